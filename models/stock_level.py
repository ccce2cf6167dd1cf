from datetime import datetime

from sqlalchemy.ext.hybrid import hybrid_property

from . import db


class StockLevel(db.Model):
    """
    Stock por producto y ubicación (libro de stock).
    - Una sola fila por (product_id, location_id).
    - quantity y reserved nunca negativos (check constraints).
    - available no es columna: siempre quantity - reserved.
    Solo services/stock.py modifica quantity.
    """
    __tablename__ = "stock_levels"

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    quantity = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    reserved = db.Column(db.Numeric(14, 3), nullable=False, default=0)  # retenido para operaciones pendientes

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    product = db.relationship("Product", back_populates="stock_levels")
    location = db.relationship("Location")

    __table_args__ = (
        db.UniqueConstraint("product_id", "location_id", name="uq_stock_level_product_location"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_level_quantity_positive"),
        db.CheckConstraint("reserved >= 0", name="ck_stock_level_reserved_positive"),
        db.Index("ix_stock_level_location", "location_id"),
    )

    @hybrid_property
    def available(self):
        return self.quantity - self.reserved

    def __repr__(self):
        return f"<StockLevel product={self.product_id} location={self.location_id} qty={self.quantity}>"
