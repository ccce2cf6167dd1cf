import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.product import Product
from models.stock_level import StockLevel
from models.stock_move import DocumentType, StockMove
from services.errors import InsufficientStock, ValidationError

logger = logging.getLogger(__name__)

QTY_STEP = Decimal("0.001")
# Numeric(14,3)
MAX_QTY = Decimal("99999999999.999")


def to_qty(val) -> Decimal:
    """
    Soporta cantidades con coma/punto. Devuelve Decimal(14,3) >= 0.
    """
    if val is None:
        return Decimal("0.000")
    s = str(val).strip().replace(",", ".")
    try:
        d = Decimal(s)
        if not d.is_finite() or d < 0:
            raise ValidationError(f"Cantidad inválida: {val!r}")
        d = d.quantize(QTY_STEP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Cantidad inválida: {val!r}")
    if d > MAX_QTY:
        raise ValidationError(f"Cantidad demasiado grande: {val!r}")
    return d


def _product_label(db: Session, product_id: int) -> str:
    p = db.get(Product, product_id)
    return p.sku if p else f"#{product_id}"


def get_or_create_stock_level(db: Session, *, product_id: int, location_id: int) -> StockLevel:
    level = (
        db.query(StockLevel)
        .filter_by(product_id=product_id, location_id=location_id)
        .first()
    )
    if level:
        return level

    # Otra transacción puede crear la misma fila a la vez: savepoint + reintento
    savepoint = db.begin_nested()
    try:
        level = StockLevel(
            product_id=product_id,
            location_id=location_id,
            quantity=Decimal("0.000"),
            reserved=Decimal("0.000"),
        )
        db.add(level)
        db.flush()
        savepoint.commit()
        return level
    except IntegrityError:
        savepoint.rollback()
        logger.debug("stock_level ya creado por otra transacción product=%s location=%s", product_id, location_id)
        return (
            db.query(StockLevel)
            .filter_by(product_id=product_id, location_id=location_id)
            .one()
        )


def increase_stock(db: Session, *, product_id: int, location_id: int, qty) -> StockLevel:
    """
    Suma stock en una ubicación (recepción / ajuste+ / destino de transferencia).
    UPDATE atómico quantity = quantity + q (nunca un set a ciegas).
    """
    q = to_qty(qty)
    level = get_or_create_stock_level(db, product_id=product_id, location_id=location_id)
    if q == 0:
        return level

    (
        db.query(StockLevel)
        .filter(StockLevel.id == level.id)
        .update({StockLevel.quantity: StockLevel.quantity + q}, synchronize_session=False)
    )
    db.refresh(level)
    return level


def decrease_stock(db: Session, *, product_id: int, location_id: int, qty) -> StockLevel:
    """
    Resta stock en una ubicación (entrega / ajuste- / origen de transferencia).
    El UPDATE solo aplica si queda >= 0; si no afecta filas -> InsufficientStock.
    """
    q = to_qty(qty)
    if q == 0:
        return get_or_create_stock_level(db, product_id=product_id, location_id=location_id)

    level = (
        db.query(StockLevel)
        .filter_by(product_id=product_id, location_id=location_id)
        .first()
    )
    updated = 0
    if level:
        updated = (
            db.query(StockLevel)
            .filter(StockLevel.id == level.id, StockLevel.quantity >= q)
            .update({StockLevel.quantity: StockLevel.quantity - q}, synchronize_session=False)
        )
        db.refresh(level)

    if not updated:
        raise InsufficientStock(
            product_id=product_id,
            location_id=location_id,
            available=Decimal(str(level.quantity)) if level else Decimal("0.000"),
            requested=q,
            product_label=_product_label(db, product_id),
        )
    return level


def relocate_stock(db: Session, *, product_id: int, from_location_id: int, to_location_id: int, qty):
    """
    Transferencia: resta en origen y suma en destino. El total del producto no cambia.
    """
    if from_location_id == to_location_id:
        raise ValidationError("Origen y destino no pueden ser iguales.")

    level_from = decrease_stock(db, product_id=product_id, location_id=from_location_id, qty=qty)
    level_to = increase_stock(db, product_id=product_id, location_id=to_location_id, qty=qty)
    return level_from, level_to


def record_move(
    db: Session,
    *,
    product_id: int,
    quantity,
    document_type: str,
    document_id: int,
    document_reference: str,
    user_id: int,
    source_location_id: Optional[int] = None,
    destination_location_id: Optional[int] = None,
    status: str = "done",
    notes: Optional[str] = None,
) -> StockMove:
    """
    Registra el movimiento de auditoría: from_=None -> entrada externa, to_=None -> salida externa.
    """
    if document_type not in DocumentType.ALL:
        raise ValidationError("document_type inválido")

    move = StockMove(
        product_id=product_id,
        source_location_id=source_location_id,
        destination_location_id=destination_location_id,
        quantity=to_qty(quantity),
        document_type=document_type,
        document_id=document_id,
        document_reference=document_reference,
        status=status,
        date=datetime.utcnow(),
        user_id=user_id,
        notes=(notes or None) and notes[:255],
    )
    db.add(move)
    db.flush()
    return move


def total_stock(db: Session, product_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(StockLevel.quantity), 0))
        .filter(StockLevel.product_id == product_id)
        .scalar()
    )
    return Decimal(str(total))


def stock_at(db: Session, *, product_id: int, location_id: int) -> Decimal:
    level = (
        db.query(StockLevel)
        .filter_by(product_id=product_id, location_id=location_id)
        .first()
    )
    return Decimal(str(level.quantity)) if level else Decimal("0.000")
