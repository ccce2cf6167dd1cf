from flask import Blueprint, jsonify, request
from flask_login import login_required

from models import db
from services import reporting
from services.payloads import to_int

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/dashboard")


@dashboard_bp.get("/kpis")
@login_required
def kpis():
    return jsonify({"success": True, "kpis": reporting.kpis(db.session)})


@dashboard_bp.get("/stats")
@login_required
def stats():
    period = to_int(request.args.get("period"), 7)
    return jsonify({"success": True, "stats": reporting.stats(db.session, period_days=period)})


@dashboard_bp.get("/low-stock-alerts")
@login_required
def low_stock_alerts():
    alerts = reporting.low_stock_alerts(db.session)
    return jsonify({"success": True, "count": len(alerts), "alerts": alerts})


@dashboard_bp.get("/recent-activities")
@login_required
def recent_activities():
    limit = min(max(to_int(request.args.get("limit"), 10), 1), 100)
    return jsonify({"success": True, "activities": reporting.recent_activities(db.session, limit=limit)})
