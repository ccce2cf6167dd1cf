from flask import jsonify
from flask_login import login_required
from sqlalchemy import text

from models import db
from models.warehouse import Warehouse
from routes import main_bp
from services.serializers import location_dict


@main_bp.get("/")
def index():
    return jsonify({"success": True, "message": "API de inventario", "health": "/health"})


@main_bp.get("/health")
def health():
    db.session.execute(text("SELECT 1"))
    return jsonify({"success": True, "status": "ok"})


@main_bp.get("/locations")
@login_required
def locations():
    """Ubicaciones activas (solo lectura), agrupadas por bodega."""
    warehouses = (
        db.session.query(Warehouse)
        .filter(Warehouse.is_active.is_(True))
        .order_by(Warehouse.name.asc())
        .all()
    )
    out = []
    for wh in warehouses:
        locs = sorted((l for l in wh.locations if l.is_active), key=lambda l: l.code)
        out.append({
            "id": wh.id,
            "name": wh.name,
            "code": wh.code,
            "locations": [location_dict(l) for l in locs],
        })
    return jsonify({"success": True, "warehouses": out})
