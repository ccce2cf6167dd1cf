from datetime import datetime

from sqlalchemy import event

from . import db


class DocumentType:
    RECEIPT = "receipt"
    DELIVERY = "delivery"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"

    ALL = {RECEIPT, DELIVERY, TRANSFER, ADJUSTMENT}


class StockMove(db.Model):
    """
    Historial de movimientos (auditoría), siempre registramos:
    - origen y destino según el tipo (None = fuera del sistema)
    - quantity positivo (magnitud del cambio)
    - el documento que lo originó (tipo, id y referencia legible)
    Una fila por línea validada. Nunca se modifica ni se borra.
    """
    __tablename__ = "stock_moves"

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    # Origen (None en recepciones: entra desde fuera)
    source_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    # Destino (None en entregas: sale hacia fuera)
    destination_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)  # siempre positivo

    document_type = db.Column(db.String(20), nullable=False)  # DocumentType.*
    document_id = db.Column(db.Integer, nullable=False)
    document_reference = db.Column(db.String(30), nullable=False)

    status = db.Column(db.String(20), nullable=False, default="draft")
    date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    product = db.relationship("Product")
    user = db.relationship("User")
    source_location = db.relationship("Location", foreign_keys=[source_location_id])
    destination_location = db.relationship("Location", foreign_keys=[destination_location_id])

    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_move_quantity_positive"),
        db.Index("ix_stock_move_product_date", "product_id", "date"),
        db.Index("ix_stock_move_type_status", "document_type", "status"),
        db.Index("ix_stock_move_date", "date"),
        db.Index("ix_stock_move_document", "document_type", "document_id"),
    )

    def __repr__(self):
        return f"<StockMove {self.id} {self.document_type} {self.document_reference} product={self.product_id} qty={self.quantity}>"


@event.listens_for(StockMove, "before_update")
def _prevent_move_update(mapper, connection, target):
    from services.errors import ImmutableRecordError

    raise ImmutableRecordError(f"El movimiento {target.id} es inmutable: no se puede modificar.")


@event.listens_for(StockMove, "before_delete")
def _prevent_move_delete(mapper, connection, target):
    from services.errors import ImmutableRecordError

    raise ImmutableRecordError(f"El movimiento {target.id} es inmutable: no se puede borrar.")
