"""
Las cuatro clases de documento y lo que cada una hace con el stock.

Cada DocumentKind junta: modelos, prefijo de referencia, cómo leer la
cabecera y las líneas del payload, y el efecto de una línea al validar.
El flujo común (crear / validar) está en services/documents.py.
"""
from models.documents import (
    Adjustment,
    AdjustmentLine,
    AdjustmentReason,
    Delivery,
    DeliveryLine,
    Receipt,
    ReceiptLine,
    Transfer,
    TransferLine,
)
from models.stock_move import DocumentType
from services.errors import ValidationError
from services.payloads import (
    clean_str,
    optional_qty,
    parse_datetime,
    pick,
    require_qty,
    resolve_location,
    resolve_product,
    resolve_warehouse,
)
from services.stock import decrease_stock, increase_stock, record_move, relocate_stock, stock_at


class DocumentKind:
    def __init__(self, name, prefix, model, line_model, payload_key, build_header, build_line, apply_line):
        self.name = name
        self.prefix = prefix
        self.model = model
        self.line_model = line_model
        self.payload_key = payload_key  # clave del documento en las respuestas JSON
        self.build_header = build_header
        self.build_line = build_line
        self.apply_line = apply_line

    def __repr__(self):
        return f"<DocumentKind {self.name} {self.prefix}>"


# -------------------------
# Helpers
# -------------------------
def _party(payload: dict, key: str, label: str) -> dict:
    party = payload.get(key)
    if isinstance(party, str):
        party = {"name": party}
    if not isinstance(party, dict) or not clean_str(party.get("name")):
        raise ValidationError(f"Falta el nombre del {label}.")
    return party


def _common_header(payload: dict) -> dict:
    header = {"notes": clean_str(payload.get("notes"))[:255] or None}
    scheduled = parse_datetime(pick(payload, "scheduledDate", "scheduled_date"))
    if scheduled:
        header["scheduled_date"] = scheduled
    return header


def _requested(item: dict, previous: dict, product_id: int, *keys, label: str):
    """Cantidad solicitada; al validar con líneas nuevas se puede omitir y se conserva la anterior."""
    old = previous.get(product_id)
    if old is not None and pick(item, *keys) is None:
        return old.requested
    return require_qty(item, *keys, label=label)


def _move(db, doc, kind_name, line, qty, user, *, source=None, destination=None, notes=None):
    return record_move(
        db,
        product_id=line.product_id,
        quantity=qty,
        document_type=kind_name,
        document_id=doc.id,
        document_reference=doc.reference,
        user_id=user.id,
        source_location_id=source,
        destination_location_id=destination,
        notes=notes,
    )


# -------------------------
# Receipt: entra stock al destino
# -------------------------
def _receipt_header(db, payload: dict) -> dict:
    supplier = _party(payload, "supplier", "proveedor")
    destination = resolve_location(db, pick(payload, "destination", "destinationLocation"), label="ubicación destino")
    warehouse = resolve_warehouse(db, payload.get("warehouse"))
    header = _common_header(payload)
    header.update(
        supplier_name=clean_str(supplier.get("name")),
        supplier_contact=clean_str(supplier.get("contact")) or None,
        supplier_email=clean_str(supplier.get("email")) or None,
        destination_id=destination.id,
        warehouse_id=warehouse.id if warehouse else destination.warehouse_id,
    )
    return header


def _receipt_line(db, doc, item: dict, previous: dict) -> ReceiptLine:
    product = resolve_product(db, item.get("product"))
    return ReceiptLine(
        product_id=product.id,
        ordered_quantity=_requested(
            item, previous, product.id, "orderedQuantity", "ordered_quantity", label="la cantidad pedida"
        ),
        received_quantity=optional_qty(item, "receivedQuantity", "received_quantity"),
    )


def _apply_receipt_line(db, doc, line, user):
    qty = line.effective_quantity
    line.received_quantity = qty
    if qty == 0:
        return None
    increase_stock(db, product_id=line.product_id, location_id=doc.destination_id, qty=qty)
    return _move(db, doc, DocumentType.RECEIPT, line, qty, user, destination=doc.destination_id)


# -------------------------
# Delivery: sale stock del origen
# -------------------------
def _delivery_header(db, payload: dict) -> dict:
    customer = _party(payload, "customer", "cliente")
    source = resolve_location(db, pick(payload, "source", "sourceLocation"), label="ubicación origen")
    warehouse = resolve_warehouse(db, payload.get("warehouse"))
    header = _common_header(payload)
    header.update(
        customer_name=clean_str(customer.get("name")),
        customer_contact=clean_str(customer.get("contact")) or None,
        customer_email=clean_str(customer.get("email")) or None,
        customer_address=clean_str(customer.get("address")) or None,
        source_id=source.id,
        warehouse_id=warehouse.id if warehouse else source.warehouse_id,
    )
    return header


def _delivery_line(db, doc, item: dict, previous: dict) -> DeliveryLine:
    product = resolve_product(db, item.get("product"))
    return DeliveryLine(
        product_id=product.id,
        ordered_quantity=_requested(
            item, previous, product.id, "orderedQuantity", "ordered_quantity", label="la cantidad pedida"
        ),
        delivered_quantity=optional_qty(item, "deliveredQuantity", "delivered_quantity"),
    )


def _apply_delivery_line(db, doc, line, user):
    qty = line.effective_quantity
    line.delivered_quantity = qty
    if qty == 0:
        return None
    decrease_stock(db, product_id=line.product_id, location_id=doc.source_id, qty=qty)
    return _move(db, doc, DocumentType.DELIVERY, line, qty, user, source=doc.source_id)


# -------------------------
# Transfer: de una ubicación a otra, el total no cambia
# -------------------------
def _transfer_header(db, payload: dict) -> dict:
    source = resolve_location(db, pick(payload, "sourceLocation", "source"), label="ubicación origen")
    destination = resolve_location(
        db, pick(payload, "destinationLocation", "destination"), label="ubicación destino"
    )
    if source.id == destination.id:
        raise ValidationError("Origen y destino no pueden ser iguales.")
    header = _common_header(payload)
    header.update(source_location_id=source.id, destination_location_id=destination.id)
    return header


def _transfer_line(db, doc, item: dict, previous: dict) -> TransferLine:
    product = resolve_product(db, item.get("product"))
    return TransferLine(
        product_id=product.id,
        requested_quantity=_requested(
            item, previous, product.id, "requestedQuantity", "requested_quantity", label="la cantidad solicitada"
        ),
        transferred_quantity=optional_qty(item, "transferredQuantity", "transferred_quantity"),
    )


def _apply_transfer_line(db, doc, line, user):
    qty = line.effective_quantity
    line.transferred_quantity = qty
    if qty == 0:
        return None
    relocate_stock(
        db,
        product_id=line.product_id,
        from_location_id=doc.source_location_id,
        to_location_id=doc.destination_location_id,
        qty=qty,
    )
    return _move(
        db,
        doc,
        DocumentType.TRANSFER,
        line,
        qty,
        user,
        source=doc.source_location_id,
        destination=doc.destination_location_id,
        notes=f"Transferencia de {doc.source_location.code} a {doc.destination_location.code}",
    )


# -------------------------
# Adjustment: conteo físico contra la foto del sistema
# -------------------------
def _adjustment_header(db, payload: dict) -> dict:
    location = resolve_location(db, payload.get("location"), label="ubicación")
    reason = clean_str(payload.get("reason")).lower() or AdjustmentReason.PHYSICAL_INVENTORY
    if reason not in AdjustmentReason.ALL:
        raise ValidationError(f"Motivo de ajuste inválido: {reason}")
    header = _common_header(payload)
    header.update(location_id=location.id, reason=reason)
    return header


def _adjustment_line(db, doc, item: dict, previous: dict) -> AdjustmentLine:
    product = resolve_product(db, item.get("product"))
    counted = require_qty(item, "countedQuantity", "counted_quantity", label="la cantidad contada")

    # La foto del sistema es la del momento de crear el ajuste
    old = previous.get(product.id)
    if old is not None:
        system_qty = old.system_quantity
    else:
        system_qty = stock_at(db, product_id=product.id, location_id=doc.location_id)

    line = AdjustmentLine(product_id=product.id, system_quantity=system_qty, counted_quantity=counted)
    line.recompute_difference()
    return line


def _apply_adjustment_line(db, doc, line, user):
    diff = line.recompute_difference()
    if diff == 0:
        return None

    qty = abs(diff)
    code = doc.location.code if doc.location else f"#{doc.location_id}"
    if diff > 0:
        increase_stock(db, product_id=line.product_id, location_id=doc.location_id, qty=qty)
        return _move(
            db, doc, DocumentType.ADJUSTMENT, line, qty, user,
            destination=doc.location_id,
            notes=f"Ajuste +{qty} en {code}: {doc.reason}",
        )

    decrease_stock(db, product_id=line.product_id, location_id=doc.location_id, qty=qty)
    return _move(
        db, doc, DocumentType.ADJUSTMENT, line, qty, user,
        source=doc.location_id,
        notes=f"Ajuste -{qty} en {code}: {doc.reason}",
    )


RECEIPT = DocumentKind(
    DocumentType.RECEIPT, "RCP", Receipt, ReceiptLine, "receipt",
    _receipt_header, _receipt_line, _apply_receipt_line,
)
DELIVERY = DocumentKind(
    DocumentType.DELIVERY, "DEL", Delivery, DeliveryLine, "delivery",
    _delivery_header, _delivery_line, _apply_delivery_line,
)
TRANSFER = DocumentKind(
    DocumentType.TRANSFER, "TRF", Transfer, TransferLine, "transfer",
    _transfer_header, _transfer_line, _apply_transfer_line,
)
ADJUSTMENT = DocumentKind(
    DocumentType.ADJUSTMENT, "ADJ", Adjustment, AdjustmentLine, "adjustment",
    _adjustment_header, _adjustment_line, _apply_adjustment_line,
)

KINDS = {k.name: k for k in (RECEIPT, DELIVERY, TRANSFER, ADJUSTMENT)}


def get_kind(name: str) -> DocumentKind:
    try:
        return KINDS[name]
    except KeyError:
        raise ValidationError(f"Tipo de documento inválido: {name}")
