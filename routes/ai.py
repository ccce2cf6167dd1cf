"""
/ai: pronóstico, sugerencias de reposición y chat.

Si el servicio externo falla se responde 200 con available=False;
el inventario sigue funcionando igual.
"""
from decimal import Decimal

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required

from models import db
from routes.guards import json_error
from services import catalog, reporting
from services.advisor import InventoryAdvisor
from services.errors import UpstreamServiceError
from services.payloads import to_int
from services.serializers import num

ai_bp = Blueprint("ai", __name__, url_prefix="/ai")


def _advisor() -> InventoryAdvisor:
    return InventoryAdvisor.from_config(current_app.config)


def _unavailable(e: UpstreamServiceError):
    current_app.logger.warning("IA no disponible: %s", e.message)
    return jsonify({"success": False, "available": False, "message": e.message})


@ai_bp.post("/forecast")
@login_required
def forecast():
    data = request.get_json(silent=True) or {}
    product = catalog.get_product(db.session, to_int(data.get("productId"), 0))
    snapshot = {
        "name": product.name,
        "sku": product.sku,
        "currentStock": num(product.stock),
        "reorderPoint": num(product.reorder_point),
        "leadTime": product.lead_time,
    }
    history = reporting.delivery_history(db.session, product.id)

    try:
        result = _advisor().forecast_demand(snapshot, history)
    except UpstreamServiceError as e:
        return _unavailable(e)
    return jsonify({"success": True, "available": True, "product": snapshot, "forecast": result})


@ai_bp.get("/reorder-suggestions")
@login_required
def reorder_suggestions():
    products = []
    for p, total in catalog.low_stock_products(db.session):
        sold = sum((Decimal(str(h["quantity"])) for h in reporting.delivery_history(db.session, p.id)), Decimal("0"))
        products.append({
            "name": p.name,
            "sku": p.sku,
            "currentStock": num(total),
            "reorderPoint": num(p.reorder_point),
            "reorderQuantity": num(p.reorder_quantity),
            "leadTime": p.lead_time,
            "averageDailySales": num(sold / 30),
        })

    try:
        result = _advisor().reorder_suggestions(products)
    except UpstreamServiceError as e:
        return _unavailable(e)
    return jsonify({"success": True, "available": True, "data": result})


@ai_bp.post("/chat")
@login_required
def chat():
    data = request.get_json(silent=True) or {}
    question = (data.get("question") or data.get("message") or "").strip()
    if not question:
        return json_error("Escribe una pregunta.", 400, "validation_error")

    kpis = reporting.kpis(db.session)
    snapshot = {
        "totalProducts": kpis["totalProducts"],
        "lowStockItems": kpis["lowStockItems"],
        "totalValue": kpis["totalStockValue"],
        "pendingReceipts": kpis["pendingReceipts"],
        "pendingDeliveries": kpis["pendingDeliveries"],
    }

    try:
        answer = _advisor().chat(question, snapshot)
    except UpstreamServiceError as e:
        return _unavailable(e)
    return jsonify({"success": True, "available": True, "response": answer})
