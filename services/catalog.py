"""
Catálogo de productos.

El stock nunca se escribe aquí: el stock inicial entra como una recepción
validada (RCP...), con su StockMove como cualquier otro cambio.
"""
import logging
import math
from decimal import Decimal, InvalidOperation

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from models.product import Product, UnitOfMeasure, normalize_sku
from models.stock_level import StockLevel
from services.documents import create_document, validate_document
from services.errors import NotFound, ValidationError
from services.payloads import clean_str, pick, to_int
from services.stock import to_qty

logger = logging.getLogger(__name__)

# Campos que el cliente puede mandar -> columna
_FIELDS = {
    "name": "name",
    "description": "description",
    "category": "category",
    "barcode": "barcode",
    "unitOfMeasure": "unit_of_measure",
    "leadTime": "lead_time",
}
_MONEY = {"cost": "cost", "price": "price"}
_QTY = {"reorderPoint": "reorder_point", "reorderQuantity": "reorder_quantity"}


# Numeric(12,2)
MAX_MONEY = Decimal("9999999999.99")


def _money(v, label: str) -> Decimal:
    try:
        d = Decimal(clean_str(v).replace(",", "."))
        if not d.is_finite() or d < 0:
            raise ValidationError(f"{label} no puede ser negativo.")
        d = d.quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{label} inválido: {v!r}")
    if d > MAX_MONEY:
        raise ValidationError(f"{label} demasiado grande: {v!r}")
    return d


def _sku_taken(db: Session, sku: str, exclude_id=None) -> bool:
    q = db.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    return q.first() is not None


def _apply_fields(db: Session, product: Product, payload: dict) -> None:
    for key, attr in _FIELDS.items():
        if key not in payload:
            continue
        value = clean_str(payload.get(key)) or None
        if attr == "unit_of_measure":
            value = (value or UnitOfMeasure.PCS).lower()
            if value not in UnitOfMeasure.ALL:
                raise ValidationError(f"Unidad de medida inválida: {value}")
        if attr == "lead_time":
            value = to_int(value, default=-1)
            if value < 0:
                raise ValidationError("leadTime debe ser un entero >= 0.")
        setattr(product, attr, value)

    for key, attr in _MONEY.items():
        if key in payload:
            setattr(product, attr, _money(payload.get(key), key))

    for key, attr in _QTY.items():
        if key in payload:
            setattr(product, attr, to_qty(payload.get(key)))

    supplier = payload.get("supplier")
    if isinstance(supplier, dict):
        product.supplier_name = clean_str(supplier.get("name")) or None
        product.supplier_contact = clean_str(supplier.get("contact")) or None
        product.supplier_email = clean_str(supplier.get("email")) or None

    if "sku" in payload:
        sku = normalize_sku(payload.get("sku"))
        if not sku:
            raise ValidationError("El SKU es obligatorio.")
        if _sku_taken(db, sku, exclude_id=product.id):
            raise ValidationError(f"Ya existe un producto con SKU {sku}.", sku=sku)
        product.sku = sku

    if not clean_str(product.name):
        raise ValidationError("El nombre es obligatorio.")


def list_products(db: Session, *, search=None, category=None, status=None, page: int = 1, limit: int = 10):
    """Devuelve (productos, total, páginas)."""
    q = db.query(Product)

    if status == "inactive":
        q = q.filter(Product.is_active.is_(False))
    elif status != "all":
        q = q.filter(Product.is_active.is_(True))

    term = clean_str(search)
    if term:
        like = f"%{term.lower()}%"
        q = q.filter(or_(func.lower(Product.name).like(like), func.lower(Product.sku).like(like)))

    if clean_str(category):
        q = q.filter(func.lower(Product.category) == clean_str(category).lower())

    count = q.count()
    products = q.order_by(Product.name.asc()).offset((page - 1) * limit).limit(limit).all()
    return products, count, math.ceil(count / limit) if limit else 0


def get_product(db: Session, product_id: int) -> Product:
    p = db.get(Product, product_id)
    if p is None:
        raise NotFound("Producto no encontrado.")
    return p


def create_product(db: Session, payload: dict, user):
    """Alta de producto. Si viene initialStock + location, se valida una recepción de apertura."""
    if not isinstance(payload, dict):
        raise ValidationError("Cuerpo JSON inválido.")
    if not normalize_sku(payload.get("sku")):
        raise ValidationError("El SKU es obligatorio.")

    initial = pick(payload, "initialStock", "initial_stock")
    location = payload.get("location")
    if clean_str(initial) and not clean_str(location):
        raise ValidationError("initialStock requiere location.")

    product = Product(is_active=True)
    _apply_fields(db, product, payload)
    db.add(product)
    db.flush()

    receipt = None
    if clean_str(initial):
        qty = to_qty(initial)
        if qty > 0:
            receipt = create_document(
                db,
                "receipt",
                {
                    "supplier": {"name": product.supplier_name or "Stock inicial"},
                    "destination": location,
                    "notes": f"Stock inicial de {product.sku}",
                    "products": [{"product": product.id, "orderedQuantity": str(qty)}],
                },
                user,
            )
            validate_document(db, "receipt", receipt.id, user)

    logger.info("Producto %s creado por user=%s", product.sku, user.id)
    return product, receipt


def update_product(db: Session, product_id: int, payload: dict) -> Product:
    if not isinstance(payload, dict):
        raise ValidationError("Cuerpo JSON inválido.")
    product = get_product(db, product_id)
    # El stock solo cambia con documentos validados
    payload = {k: v for k, v in payload.items() if k not in ("stock", "initialStock", "stockLevels")}
    _apply_fields(db, product, payload)
    if "isActive" in payload:
        product.is_active = bool(payload.get("isActive"))
    db.flush()
    return product


def deactivate_product(db: Session, product_id: int) -> Product:
    product = get_product(db, product_id)
    product.is_active = False
    db.flush()
    logger.info("Producto %s desactivado", product.sku)
    return product


def totals_by_product(db: Session) -> dict:
    rows = (
        db.query(StockLevel.product_id, func.coalesce(func.sum(StockLevel.quantity), 0))
        .group_by(StockLevel.product_id)
        .all()
    )
    return {pid: Decimal(str(total)) for pid, total in rows}


def low_stock_products(db: Session):
    """Productos activos con stock total <= punto de reorden. Lista de (producto, stock)."""
    totals = totals_by_product(db)
    out = []
    for p in db.query(Product).filter(Product.is_active.is_(True)).order_by(Product.name.asc()).all():
        total = totals.get(p.id, Decimal("0.000"))
        if total <= Decimal(str(p.reorder_point)):
            out.append((p, total))
    return out


def stock_by_location(db: Session, product_id: int):
    product = get_product(db, product_id)
    levels = (
        db.query(StockLevel)
        .filter(StockLevel.product_id == product.id)
        .order_by(StockLevel.location_id.asc())
        .all()
    )
    return product, levels
