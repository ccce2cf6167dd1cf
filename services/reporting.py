"""Consultas de solo lectura para el dashboard. Nunca modifican stock."""
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from models.documents import Delivery, DocumentStatus, Receipt, Transfer
from models.product import Product
from models.stock_level import StockLevel
from models.stock_move import StockMove
from services.catalog import totals_by_product
from services.serializers import num

SEVERITY_ORDER = {"critical": 0, "high": 1, "medium": 2}


def _pending(db: Session, model) -> int:
    return db.query(func.count(model.id)).filter(model.status.in_(DocumentStatus.OPEN)).scalar() or 0


def kpis(db: Session, now=None) -> dict:
    now = now or datetime.utcnow()
    totals = totals_by_product(db)
    products = db.query(Product).filter(Product.is_active.is_(True)).all()

    low = out = 0
    value = Decimal("0")
    for p in products:
        total = totals.get(p.id, Decimal("0"))
        if total == 0:
            out += 1
        elif total <= Decimal(str(p.reorder_point)):
            low += 1
        value += total * Decimal(str(p.cost or 0))

    recent = (
        db.query(func.count(StockMove.id))
        .filter(StockMove.date >= now - timedelta(days=7), StockMove.status == DocumentStatus.DONE)
        .scalar()
    )

    return {
        "totalProducts": len(products),
        "lowStockItems": low,
        "outOfStockItems": out,
        "pendingReceipts": _pending(db, Receipt),
        "pendingDeliveries": _pending(db, Delivery),
        "scheduledTransfers": _pending(db, Transfer),
        "totalStockValue": f"{value.quantize(Decimal('0.01'))}",
        "recentMovements": recent or 0,
    }


def _by_status(db: Session, model) -> list:
    rows = db.query(model.status, func.count(model.id)).group_by(model.status).all()
    return [{"status": s, "count": c} for s, c in rows]


def stats(db: Session, period_days: int = 7, now=None) -> dict:
    now = now or datetime.utcnow()
    since = now - timedelta(days=max(period_days, 1))
    done_since = (StockMove.date >= since, StockMove.status == DocumentStatus.DONE)

    by_type = (
        db.query(StockMove.document_type, func.count(StockMove.id), func.coalesce(func.sum(StockMove.quantity), 0))
        .filter(*done_since)
        .group_by(StockMove.document_type)
        .all()
    )

    day = func.date(StockMove.date)
    daily = db.query(day, func.count(StockMove.id)).filter(*done_since).group_by(day).order_by(day.asc()).all()

    totals = totals_by_product(db)
    top = []
    for p in db.query(Product).filter(Product.is_active.is_(True)).all():
        qty = totals.get(p.id, Decimal("0"))
        if qty > 0:
            top.append({
                "product": p.name,
                "sku": p.sku,
                "quantity": num(qty),
                "value": num(qty * Decimal(str(p.cost or 0))),
            })
    top.sort(key=lambda r: r["value"], reverse=True)

    return {
        "movementsByType": [
            {"documentType": t, "count": c, "totalQuantity": num(q)} for t, c, q in by_type
        ],
        "receiptsByStatus": _by_status(db, Receipt),
        "deliveriesByStatus": _by_status(db, Delivery),
        "topProductsByValue": top[:10],
        "dailyMovements": [{"date": str(d), "count": c} for d, c in daily],
    }


def _severity(total: Decimal, reorder_point: Decimal) -> str:
    if total == 0:
        return "critical"
    if total <= reorder_point * Decimal("0.5"):
        return "high"
    return "medium"


def low_stock_alerts(db: Session) -> list:
    totals = totals_by_product(db)
    alerts = []
    for p in db.query(Product).filter(Product.is_active.is_(True)).all():
        total = totals.get(p.id, Decimal("0"))
        reorder_point = Decimal(str(p.reorder_point))
        if total > reorder_point:
            continue

        levels = (
            db.query(StockLevel)
            .options(joinedload(StockLevel.location))
            .filter(StockLevel.product_id == p.id)
            .all()
        )
        alerts.append({
            "product": {"id": p.id, "name": p.name, "sku": p.sku, "category": p.category},
            "currentStock": num(total),
            "reorderPoint": num(reorder_point),
            "reorderQuantity": num(p.reorder_quantity),
            "deficit": num(max(Decimal("0"), reorder_point - total)),
            "severity": _severity(total, reorder_point),
            "stockLocations": [
                {"location": sl.location.name, "code": sl.location.code, "quantity": num(sl.quantity)}
                for sl in levels
            ],
        })

    alerts.sort(key=lambda a: SEVERITY_ORDER[a["severity"]])
    return alerts


def recent_activities(db: Session, limit: int = 10) -> list:
    moves = (
        db.query(StockMove)
        .options(joinedload(StockMove.product), joinedload(StockMove.user))
        .order_by(StockMove.created_at.desc(), StockMove.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": m.id,
            "type": m.document_type,
            "product": m.product.name if m.product else None,
            "sku": m.product.sku if m.product else None,
            "quantity": num(m.quantity),
            "status": m.status,
            "reference": m.document_reference,
            "user": m.user.full_name if m.user else None,
            "date": m.date.isoformat() if m.date else None,
        }
        for m in moves
    ]


def delivery_history(db: Session, product_id: int, days: int = 30, now=None) -> list:
    """Salidas validadas del producto en los últimos N días (entrada para el asesor de IA)."""
    now = now or datetime.utcnow()
    moves = (
        db.query(StockMove)
        .filter(
            StockMove.product_id == product_id,
            StockMove.document_type == "delivery",
            StockMove.status == DocumentStatus.DONE,
            StockMove.date >= now - timedelta(days=days),
        )
        .order_by(StockMove.date.asc())
        .all()
    )
    return [{"date": m.date.isoformat(), "quantity": num(m.quantity)} for m in moves]
