from datetime import datetime

from sqlalchemy import event
from sqlalchemy.orm import declared_attr

from . import db


class DocumentStatus:
    DRAFT = "draft"
    # waiting / ready / cancelled existen en el modelo pero ninguna transición
    # llega a ellos todavía (¿flujo de picking pendiente?). Solo draft -> done.
    WAITING = "waiting"
    READY = "ready"
    DONE = "done"
    CANCELLED = "cancelled"

    ALL = {DRAFT, WAITING, READY, DONE, CANCELLED}
    OPEN = (DRAFT, WAITING, READY)  # pendientes en el dashboard
    VALIDATABLE = (DRAFT,)


class AdjustmentReason:
    PHYSICAL_INVENTORY = "physical_inventory"
    DAMAGE = "damage"
    THEFT = "theft"
    EXPIRY = "expiry"
    OTHER = "other"

    ALL = {PHYSICAL_INVENTORY, DAMAGE, THEFT, EXPIRY, OTHER}


class DocumentMixin:
    """
    Cabecera común de Receipt / Delivery / Transfer / Adjustment.
    - reference: única, se genera al crear si no viene (services/references.py)
    - status: draft -> done (validación)
    - completed_date: solo al pasar a done
    """

    id = db.Column(db.Integer, primary_key=True)

    reference = db.Column(db.String(30), nullable=False, unique=True)
    status = db.Column(db.String(20), nullable=False, default=DocumentStatus.DRAFT, index=True)

    scheduled_date = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    completed_date = db.Column(db.DateTime, nullable=True)

    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @declared_attr
    def user_id(cls):
        return db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    @declared_attr
    def user(cls):
        return db.relationship("User")

    @property
    def is_done(self) -> bool:
        return self.status == DocumentStatus.DONE


class DocumentLineMixin:
    """
    Línea de documento: cantidad solicitada + cantidad real.
    La real es provisional hasta que el documento queda en done;
    si no viene, vale lo mismo que la solicitada.
    """

    REQUESTED_FIELD = None
    ACTUAL_FIELD = None

    id = db.Column(db.Integer, primary_key=True)

    @declared_attr
    def product_id(cls):
        return db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    @declared_attr
    def product(cls):
        return db.relationship("Product")

    @property
    def requested(self):
        return getattr(self, self.REQUESTED_FIELD)

    @property
    def actual(self):
        return getattr(self, self.ACTUAL_FIELD)

    @property
    def effective_quantity(self):
        actual = self.actual
        return self.requested if actual is None else actual


# -------------------------
# Recepciones (entrada de proveedor)
# -------------------------
class Receipt(DocumentMixin, db.Model):
    __tablename__ = "receipts"

    supplier_name = db.Column(db.String(160), nullable=False)
    supplier_contact = db.Column(db.String(120), nullable=True)
    supplier_email = db.Column(db.String(180), nullable=True)

    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    destination_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    warehouse = db.relationship("Warehouse")
    destination = db.relationship("Location")

    lines = db.relationship(
        "ReceiptLine", backref="receipt", cascade="all, delete-orphan", order_by="ReceiptLine.id"
    )


class ReceiptLine(DocumentLineMixin, db.Model):
    __tablename__ = "receipt_lines"

    REQUESTED_FIELD = "ordered_quantity"
    ACTUAL_FIELD = "received_quantity"

    receipt_id = db.Column(db.Integer, db.ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False, index=True)

    ordered_quantity = db.Column(db.Numeric(14, 3), nullable=False)
    received_quantity = db.Column(db.Numeric(14, 3), nullable=True)


# -------------------------
# Entregas (salida a cliente)
# -------------------------
class Delivery(DocumentMixin, db.Model):
    __tablename__ = "deliveries"

    customer_name = db.Column(db.String(160), nullable=False)
    customer_contact = db.Column(db.String(120), nullable=True)
    customer_email = db.Column(db.String(180), nullable=True)
    customer_address = db.Column(db.String(255), nullable=True)

    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    source_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    warehouse = db.relationship("Warehouse")
    source = db.relationship("Location")

    lines = db.relationship(
        "DeliveryLine", backref="delivery", cascade="all, delete-orphan", order_by="DeliveryLine.id"
    )


class DeliveryLine(DocumentLineMixin, db.Model):
    __tablename__ = "delivery_lines"

    REQUESTED_FIELD = "ordered_quantity"
    ACTUAL_FIELD = "delivered_quantity"

    delivery_id = db.Column(db.Integer, db.ForeignKey("deliveries.id", ondelete="CASCADE"), nullable=False, index=True)

    ordered_quantity = db.Column(db.Numeric(14, 3), nullable=False)
    delivered_quantity = db.Column(db.Numeric(14, 3), nullable=True)


# -------------------------
# Transferencias internas (no cambian el total)
# -------------------------
class Transfer(DocumentMixin, db.Model):
    __tablename__ = "transfers"

    source_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)
    destination_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)

    source_location = db.relationship("Location", foreign_keys=[source_location_id])
    destination_location = db.relationship("Location", foreign_keys=[destination_location_id])

    lines = db.relationship(
        "TransferLine", backref="transfer", cascade="all, delete-orphan", order_by="TransferLine.id"
    )

    __table_args__ = (
        db.CheckConstraint(
            "source_location_id <> destination_location_id", name="ck_transfer_distinct_locations"
        ),
    )


class TransferLine(DocumentLineMixin, db.Model):
    __tablename__ = "transfer_lines"

    REQUESTED_FIELD = "requested_quantity"
    ACTUAL_FIELD = "transferred_quantity"

    transfer_id = db.Column(db.Integer, db.ForeignKey("transfers.id", ondelete="CASCADE"), nullable=False, index=True)

    requested_quantity = db.Column(db.Numeric(14, 3), nullable=False)
    transferred_quantity = db.Column(db.Numeric(14, 3), nullable=True)


# -------------------------
# Ajustes (conteo físico vs sistema)
# -------------------------
class Adjustment(DocumentMixin, db.Model):
    __tablename__ = "adjustments"

    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=False)
    reason = db.Column(db.String(30), nullable=False, default=AdjustmentReason.PHYSICAL_INVENTORY)

    location = db.relationship("Location")

    lines = db.relationship(
        "AdjustmentLine", backref="adjustment", cascade="all, delete-orphan", order_by="AdjustmentLine.id"
    )


class AdjustmentLine(DocumentLineMixin, db.Model):
    __tablename__ = "adjustment_lines"

    REQUESTED_FIELD = "system_quantity"
    ACTUAL_FIELD = "counted_quantity"

    adjustment_id = db.Column(
        db.Integer, db.ForeignKey("adjustments.id", ondelete="CASCADE"), nullable=False, index=True
    )

    system_quantity = db.Column(db.Numeric(14, 3), nullable=False)  # foto del stock al crear
    counted_quantity = db.Column(db.Numeric(14, 3), nullable=False)  # conteo físico
    difference = db.Column(db.Numeric(14, 3), nullable=False, default=0)

    def recompute_difference(self):
        self.difference = (self.counted_quantity or 0) - (self.system_quantity or 0)
        return self.difference


@event.listens_for(AdjustmentLine, "before_insert")
@event.listens_for(AdjustmentLine, "before_update")
def _recompute_adjustment_difference(mapper, connection, target):
    # Nunca confiar en una diferencia calculada fuera
    target.recompute_difference()
