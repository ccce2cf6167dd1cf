"""
Flujo de documentos: crear en draft y validar (draft -> done).

validate_document aplica todo en la transacción del llamador:
  1. compare-and-set del status (solo un validador gana)
  2. reemplazo opcional de líneas
  3. efecto de stock por línea + un StockMove por línea con efecto
El llamador hace commit; ante cualquier excepción hace rollback y no queda nada.
"""
import logging
import math
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.documents import DocumentStatus
from services.document_kinds import get_kind
from services.errors import AlreadyValidated, DuplicateReference, NotFound, ValidationError
from services.references import assign_reference

logger = logging.getLogger(__name__)


def _build_lines(db: Session, kind, doc, items, previous: dict) -> list:
    if not isinstance(items, list) or not items:
        raise ValidationError("Agrega al menos un producto.")

    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Línea de producto inválida.")
        lines.append(kind.build_line(db, doc, item, previous))
    return lines


def create_document(db: Session, kind_name: str, payload: dict, user):
    """Crea el documento en draft. No toca stock."""
    kind = get_kind(kind_name)
    if not isinstance(payload, dict):
        raise ValidationError("Cuerpo JSON inválido.")

    header = kind.build_header(db, payload)
    doc = kind.model(status=DocumentStatus.DRAFT, user_id=user.id, **header)
    doc.lines = _build_lines(db, kind, doc, payload.get("products"), previous={})
    doc.reference = assign_reference(db, kind.model, kind.prefix, payload.get("reference"))

    db.add(doc)
    try:
        db.flush()
    except IntegrityError as e:
        if "reference" in str(e.orig).lower():
            raise DuplicateReference(f"La referencia {doc.reference} ya existe.", reference=doc.reference)
        raise

    logger.info("%s %s creado por user=%s (%s líneas)", kind.name, doc.reference, user.id, len(doc.lines))
    return doc


def _claim_for_validation(db: Session, kind, document_id: int, now: datetime):
    """
    Compare-and-set: pasa a done solo si sigue en draft.
    En PostgreSQL la fila queda bloqueada hasta el commit; un segundo
    validador espera y luego ve status=done.
    """
    model = kind.model
    claimed = (
        db.query(model)
        .filter(model.id == document_id, model.status.in_(DocumentStatus.VALIDATABLE))
        .update({model.status: DocumentStatus.DONE, model.completed_date: now}, synchronize_session=False)
    )
    if claimed:
        return

    status = db.query(model.status).filter(model.id == document_id).scalar()
    if status is None:
        raise NotFound(f"{kind.name.capitalize()} no encontrado.")
    if status == DocumentStatus.DONE:
        raise AlreadyValidated(f"{kind.name.capitalize()} ya validado.")
    raise ValidationError(f"{kind.name.capitalize()} en estado {status}: no se puede validar.")


def validate_document(db: Session, kind_name: str, document_id: int, user, overrides=None):
    """
    Valida el documento y devuelve (doc, moves).
    overrides: lista de líneas que reemplaza a las actuales (cantidades reales distintas).
    """
    kind = get_kind(kind_name)
    now = datetime.utcnow()

    _claim_for_validation(db, kind, document_id, now)

    doc = db.get(kind.model, document_id)
    db.refresh(doc)

    if overrides is not None:
        previous = {line.product_id: line for line in doc.lines}
        doc.lines = _build_lines(db, kind, doc, overrides, previous)
        db.flush()

    moves = []
    for line in doc.lines:
        move = kind.apply_line(db, doc, line, user)
        if move is not None:
            moves.append(move)

    db.flush()
    logger.info(
        "%s %s validado por user=%s: %s movimientos",
        kind.name, doc.reference, user.id, len(moves),
    )
    return doc, moves


def get_document(db: Session, kind_name: str, document_id: int):
    kind = get_kind(kind_name)
    doc = db.get(kind.model, document_id)
    if doc is None:
        raise NotFound(f"{kind.name.capitalize()} no encontrado.")
    return doc


def list_documents(db: Session, kind_name: str, *, status=None, page: int = 1, limit: int = 10):
    """Devuelve (documentos, total, páginas). Más nuevos primero."""
    kind = get_kind(kind_name)
    model = kind.model

    q = db.query(model)
    if status:
        if status not in DocumentStatus.ALL:
            raise ValidationError(f"Estado inválido: {status}")
        q = q.filter(model.status == status)

    count = q.count()
    docs = (
        q.order_by(model.created_at.desc(), model.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return docs, count, math.ceil(count / limit) if limit else 0
