"""
Referencias legibles de documentos: PREFIJO + número con ceros (RCP000001).

No usamos count()+1: dos altas simultáneas obtendrían el mismo número.
Cada prefijo tiene su fila en document_sequences, que se bloquea con
SELECT ... FOR UPDATE hasta que termina la transacción del llamador.
"""
import logging

from flask import current_app, has_app_context
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.sequence import DocumentSequence
from services.errors import DuplicateReference

logger = logging.getLogger(__name__)

DEFAULT_PAD_WIDTH = 6
MAX_ATTEMPTS = 20


def _pad_width() -> int:
    if has_app_context():
        return int(current_app.config.get("REFERENCE_PAD_WIDTH", DEFAULT_PAD_WIDTH))
    return DEFAULT_PAD_WIDTH


def format_reference(prefix: str, value: int, width: int | None = None) -> str:
    return f"{prefix}{str(value).zfill(width or _pad_width())}"


def normalize_reference(raw) -> str:
    return (raw or "").strip().upper()


def _locked_counter(db: Session, prefix: str):
    return db.execute(
        select(DocumentSequence)
        .where(DocumentSequence.prefix == prefix)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def next_sequence_value(db: Session, prefix: str) -> int:
    """Siguiente valor del contador (se consume solo si la transacción hace commit)."""
    counter = _locked_counter(db, prefix)

    if counter is None:
        # Primer uso del prefijo: otro hilo puede crearlo a la vez
        savepoint = db.begin_nested()
        try:
            counter = DocumentSequence(prefix=prefix, last_value=1)
            db.add(counter)
            db.flush()
            savepoint.commit()
            return 1
        except IntegrityError:
            savepoint.rollback()
            logger.debug("Contador %s creado por otra transacción, reintentando", prefix)
            counter = _locked_counter(db, prefix)

    counter.last_value += 1
    db.flush()
    return counter.last_value


def reference_exists(db: Session, model, reference: str) -> bool:
    return db.query(model.id).filter(model.reference == reference).first() is not None


def next_reference(db: Session, model, prefix: str) -> str:
    """
    Genera una referencia libre para el modelo.
    Si alguien cargó a mano una referencia que coincide, el contador avanza otra vez.
    """
    for _ in range(MAX_ATTEMPTS):
        candidate = format_reference(prefix, next_sequence_value(db, prefix))
        if not reference_exists(db, model, candidate):
            return candidate
        logger.info("Referencia %s ya usada, avanzando contador", candidate)
    raise DuplicateReference(f"No se pudo generar una referencia libre para {prefix}.")


def assign_reference(db: Session, model, prefix: str, requested=None) -> str:
    """Referencia pedida por el cliente (validada) o una nueva del contador."""
    requested = normalize_reference(requested)
    if not requested:
        return next_reference(db, model, prefix)
    if reference_exists(db, model, requested):
        raise DuplicateReference(f"La referencia {requested} ya existe.", reference=requested)
    return requested
