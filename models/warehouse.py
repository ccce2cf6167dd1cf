from datetime import datetime

from . import db


class LocationType:
    WAREHOUSE = "warehouse"
    ZONE = "zone"
    RACK = "rack"
    SHELF = "shelf"
    BIN = "bin"

    ALL = {WAREHOUSE, ZONE, RACK, SHELF, BIN}


class Warehouse(db.Model):
    __tablename__ = "warehouses"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False, unique=True)
    code = db.Column(db.String(20), nullable=False, unique=True)  # siempre en mayúsculas

    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    locations = db.relationship("Location", back_populates="warehouse", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Warehouse {self.id} {self.code}>"


class Location(db.Model):
    """
    Ubicación física dentro de una bodega (zona, rack, estante...).
    Todo el stock se lleva por ubicación (ver StockLevel).
    """
    __tablename__ = "locations"

    id = db.Column(db.Integer, primary_key=True)

    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    parent_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)

    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(30), nullable=False, unique=True)  # siempre en mayúsculas
    type = db.Column(db.String(20), nullable=False, default=LocationType.ZONE)

    capacity = db.Column(db.Numeric(14, 3), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    warehouse = db.relationship("Warehouse", back_populates="locations")
    parent = db.relationship("Location", remote_side=[id])

    __table_args__ = (
        db.UniqueConstraint("warehouse_id", "name", name="uq_location_warehouse_name"),
    )

    def __repr__(self) -> str:
        return f"<Location {self.id} {self.code} warehouse={self.warehouse_id}>"
