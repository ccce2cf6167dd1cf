"""Lectura de payloads JSON: limpia strings, cantidades, fechas y ubicaciones."""
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.product import Product
from models.warehouse import Location, Warehouse
from services.errors import ValidationError
from services.stock import to_qty


def clean_str(v) -> str:
    return (str(v) if v is not None else "").strip()


def to_int(v, default: int = 0) -> int:
    try:
        return int(clean_str(v))
    except ValueError:
        return default


def pick(data: dict, *keys):
    """Primer valor presente entre varias claves (camelCase o snake_case)."""
    for k in keys:
        if k in data and data[k] is not None:
            return data[k]
    return None


def require_qty(data: dict, *keys, label: str) -> Decimal:
    raw = pick(data, *keys)
    if raw is None or clean_str(raw) == "":
        raise ValidationError(f"Falta {label}.")
    return to_qty(raw)


def optional_qty(data: dict, *keys):
    raw = pick(data, *keys)
    if raw is None or clean_str(raw) == "":
        return None
    return to_qty(raw)


def parse_datetime(s, default=None):
    """Acepta YYYY-MM-DD o ISO 8601 (con o sin Z)."""
    if s is None or clean_str(s) == "":
        return default
    raw = clean_str(s)
    if raw.endswith("Z"):
        raw = raw[:-1]
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"Fecha inválida: {s!r}")


def parse_date_range(start, end):
    """Rango inclusivo. Si endDate viene sin hora, cubre el día completo."""
    date_from = parse_datetime(start)
    date_to = parse_datetime(end)
    if date_to is not None and len(clean_str(end)) == 10:
        date_to = date_to + timedelta(days=1) - timedelta(microseconds=1)
    return date_from, date_to


def resolve_location(db: Session, value, *, label: str = "ubicación", required: bool = True):
    """
    Acepta id numérico, código o nombre. La ubicación debe existir y estar activa.
    """
    if value is None or clean_str(value) == "":
        if required:
            raise ValidationError(f"Falta {label}.")
        return None

    if isinstance(value, dict):
        value = pick(value, "id", "_id", "code", "name")

    q = db.query(Location).filter(Location.is_active.is_(True))
    raw = clean_str(value)
    loc = None
    if raw.isdigit():
        loc = q.filter(Location.id == int(raw)).first()
    if loc is None:
        loc = q.filter(Location.code == raw.upper()).first()
    if loc is None:
        loc = q.filter(func.lower(Location.name) == raw.lower()).first()
    if loc is None:
        raise ValidationError(f"No existe la {label} '{raw}'.")
    return loc


def resolve_warehouse(db: Session, value):
    if value is None or clean_str(value) == "":
        return None
    raw = clean_str(value)
    q = db.query(Warehouse).filter(Warehouse.is_active.is_(True))
    wh = q.filter(Warehouse.id == int(raw)).first() if raw.isdigit() else None
    if wh is None:
        wh = q.filter(Warehouse.code == raw.upper()).first()
    if wh is None:
        raise ValidationError(f"No existe la bodega '{raw}'.")
    return wh


def resolve_product(db: Session, value) -> Product:
    if isinstance(value, dict):
        value = pick(value, "id", "_id", "sku")
    raw = clean_str(value)
    if not raw:
        raise ValidationError("Cada línea necesita un producto.")
    q = db.query(Product).filter(Product.is_active.is_(True))
    p = q.filter(Product.id == int(raw)).first() if raw.isdigit() else None
    if p is None:
        p = q.filter(Product.sku == raw.upper()).first()
    if p is None:
        raise ValidationError(f"Producto inválido o inactivo: '{raw}'.")
    return p
