import math

from sqlalchemy.orm import Session, joinedload

from models.documents import DocumentStatus
from models.stock_move import DocumentType, StockMove
from services.errors import ValidationError
from services.payloads import parse_date_range, resolve_product


def query_moves(
    db: Session,
    *,
    product=None,
    document_type=None,
    status=None,
    start_date=None,
    end_date=None,
    page: int = 1,
    limit: int = 20,
):
    """Historial de movimientos con filtros. Devuelve (moves, total, páginas)."""
    q = db.query(StockMove).options(
        joinedload(StockMove.product),
        joinedload(StockMove.user),
        joinedload(StockMove.source_location),
        joinedload(StockMove.destination_location),
    )

    if product:
        q = q.filter(StockMove.product_id == resolve_product(db, product).id)

    if document_type:
        if document_type not in DocumentType.ALL:
            raise ValidationError(f"documentType inválido: {document_type}")
        q = q.filter(StockMove.document_type == document_type)

    if status:
        if status not in DocumentStatus.ALL:
            raise ValidationError(f"Estado inválido: {status}")
        q = q.filter(StockMove.status == status)

    date_from, date_to = parse_date_range(start_date, end_date)
    if date_from:
        q = q.filter(StockMove.date >= date_from)
    if date_to:
        q = q.filter(StockMove.date <= date_to)

    count = q.count()
    moves = (
        q.order_by(StockMove.date.desc(), StockMove.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return moves, count, math.ceil(count / limit) if limit else 0


def moves_for_document(db: Session, document_type: str, document_id: int):
    return (
        db.query(StockMove)
        .filter(StockMove.document_type == document_type, StockMove.document_id == document_id)
        .order_by(StockMove.id.asc())
        .all()
    )
