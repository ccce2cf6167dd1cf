"""Convierte modelos a dicts JSON (claves camelCase, cantidades como float)."""
from decimal import Decimal


def num(v) -> float:
    """Safe decimal/numeric -> float."""
    if v is None:
        return 0.0
    try:
        return float(Decimal(str(v)))
    except Exception:
        return float(v or 0)


def iso(dt):
    return dt.isoformat() if dt else None


def location_dict(loc):
    if loc is None:
        return None
    return {
        "id": loc.id,
        "name": loc.name,
        "code": loc.code,
        "type": loc.type,
        "warehouse": loc.warehouse_id,
        "isActive": loc.is_active,
    }


def product_dict(p, *, with_stock: bool = False):
    out = {
        "id": p.id,
        "name": p.name,
        "sku": p.sku,
        "description": p.description,
        "category": p.category,
        "unitOfMeasure": p.unit_of_measure,
        "cost": num(p.cost),
        "price": num(p.price),
        "reorderPoint": num(p.reorder_point),
        "reorderQuantity": num(p.reorder_quantity),
        "leadTime": p.lead_time,
        "supplier": {
            "name": p.supplier_name,
            "contact": p.supplier_contact,
            "email": p.supplier_email,
        },
        "barcode": p.barcode,
        "isActive": p.is_active,
        "createdAt": iso(p.created_at),
    }
    if with_stock:
        levels = p.stock_levels.all()
        out["stockLevels"] = [stock_level_dict(sl) for sl in levels]
        out["totalStock"] = num(sum((sl.quantity for sl in levels), Decimal("0")))
    return out


def stock_level_dict(sl):
    return {
        "id": sl.id,
        "product": sl.product_id,
        "location": location_dict(sl.location),
        "quantity": num(sl.quantity),
        "reserved": num(sl.reserved),
        "available": num(sl.available),
    }


def move_dict(m):
    return {
        "id": m.id,
        "product": {"id": m.product_id, "name": m.product.name, "sku": m.product.sku} if m.product else None,
        "sourceLocation": location_dict(m.source_location),
        "destinationLocation": location_dict(m.destination_location),
        "quantity": num(m.quantity),
        "documentType": m.document_type,
        "documentId": m.document_id,
        "documentReference": m.document_reference,
        "status": m.status,
        "date": iso(m.date),
        "user": {"id": m.user_id, "name": m.user.full_name} if m.user else None,
        "notes": m.notes,
    }


def _line_dict(line):
    out = {
        "id": line.id,
        "product": {"id": line.product_id, "name": line.product.name, "sku": line.product.sku}
        if line.product else line.product_id,
    }
    for field in (line.REQUESTED_FIELD, line.ACTUAL_FIELD):
        value = getattr(line, field)
        out[_camel(field)] = None if value is None else num(value)
    if hasattr(line, "difference"):
        out["difference"] = num(line.difference)
    return out


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.capitalize() for p in rest)


def document_dict(kind, doc):
    out = {
        "id": doc.id,
        "kind": kind.name,
        "reference": doc.reference,
        "status": doc.status,
        "scheduledDate": iso(doc.scheduled_date),
        "completedDate": iso(doc.completed_date),
        "user": doc.user_id,
        "notes": doc.notes,
        "createdAt": iso(doc.created_at),
        "products": [_line_dict(line) for line in doc.lines],
    }
    if kind.name == "receipt":
        out.update(
            supplier={"name": doc.supplier_name, "contact": doc.supplier_contact, "email": doc.supplier_email},
            warehouse=doc.warehouse_id,
            destination=location_dict(doc.destination),
        )
    elif kind.name == "delivery":
        out.update(
            customer={
                "name": doc.customer_name,
                "contact": doc.customer_contact,
                "email": doc.customer_email,
                "address": doc.customer_address,
            },
            warehouse=doc.warehouse_id,
            source=location_dict(doc.source),
        )
    elif kind.name == "transfer":
        out.update(
            sourceLocation=location_dict(doc.source_location),
            destinationLocation=location_dict(doc.destination_location),
        )
    elif kind.name == "adjustment":
        out.update(location=location_dict(doc.location), reason=doc.reason)
    return out
