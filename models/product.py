from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import object_session

from . import db


class UnitOfMeasure:
    PCS = "pcs"
    KG = "kg"
    LITRE = "litre"
    METER = "meter"
    BOX = "box"
    CARTON = "carton"
    DOZEN = "dozen"

    ALL = {PCS, KG, LITRE, METER, BOX, CARTON, DOZEN}


def normalize_sku(raw) -> str:
    return (raw or "").strip().upper()


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(160), nullable=False)
    sku = db.Column(db.String(60), nullable=False, unique=True)  # normalizado con normalize_sku
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True)

    unit_of_measure = db.Column(db.String(20), nullable=False, default=UnitOfMeasure.PCS)

    cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Política de reposición (solo lectura para el núcleo)
    reorder_point = db.Column(db.Numeric(14, 3), nullable=False, default=10)
    reorder_quantity = db.Column(db.Numeric(14, 3), nullable=False, default=50)
    lead_time = db.Column(db.Integer, nullable=False, default=7)  # días

    supplier_name = db.Column(db.String(160), nullable=True)
    supplier_contact = db.Column(db.String(120), nullable=True)
    supplier_email = db.Column(db.String(180), nullable=True)

    barcode = db.Column(db.String(60), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    stock_levels = db.relationship("StockLevel", back_populates="product", lazy="dynamic")

    __table_args__ = (
        db.CheckConstraint("cost >= 0", name="ck_product_cost_positive"),
        db.CheckConstraint("price >= 0", name="ck_product_price_positive"),
    )

    @property
    def stock(self) -> Decimal:
        """Stock total = suma de StockLevel.quantity en todas las ubicaciones.

        No se guarda en la tabla: el libro por ubicación es la única fuente de verdad.
        """
        from .stock_level import StockLevel

        session = object_session(self)
        if session is None or self.id is None:
            return Decimal("0.000")
        total = (
            session.query(func.coalesce(func.sum(StockLevel.quantity), 0))
            .filter(StockLevel.product_id == self.id)
            .scalar()
        )
        return Decimal(str(total))

    def __repr__(self):
        return f"<Product {self.id} {self.sku}>"
