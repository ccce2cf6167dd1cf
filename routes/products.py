from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from models import db
from models.user import Role
from routes import page_args
from routes.guards import require_roles
from services import catalog
from services.serializers import num, product_dict, stock_level_dict

products_bp = Blueprint("products", __name__, url_prefix="/products")


@products_bp.get("")
@login_required
def list_products():
    page, limit = page_args()
    args = request.args
    products, count, total_pages = catalog.list_products(
        db.session,
        search=args.get("search"),
        category=args.get("category"),
        status=args.get("status"),
        page=page,
        limit=limit,
    )
    totals = catalog.totals_by_product(db.session)
    out = []
    for p in products:
        d = product_dict(p)
        d["totalStock"] = num(totals.get(p.id, 0))
        out.append(d)
    return jsonify({
        "success": True,
        "count": count,
        "totalPages": total_pages,
        "currentPage": page,
        "products": out,
    })


@products_bp.get("/low-stock")
@login_required
def low_stock():
    rows = catalog.low_stock_products(db.session)
    out = []
    for p, total in rows:
        d = product_dict(p)
        d["totalStock"] = num(total)
        d["deficit"] = num(p.reorder_point - total)
        out.append(d)
    return jsonify({"success": True, "count": len(out), "products": out})


@products_bp.get("/<int:product_id>")
@login_required
def get_product(product_id: int):
    p = catalog.get_product(db.session, product_id)
    return jsonify({"success": True, "product": product_dict(p, with_stock=True)})


@products_bp.get("/<int:product_id>/stock-by-location")
@login_required
def stock_by_location(product_id: int):
    p, levels = catalog.stock_by_location(db.session, product_id)
    return jsonify({
        "success": True,
        "product": {"id": p.id, "name": p.name, "sku": p.sku},
        "stockLevels": [stock_level_dict(sl) for sl in levels],
        "totalStock": num(sum(sl.quantity for sl in levels)),
    })


@products_bp.post("")
@login_required
@require_roles(*Role.PRIVILEGED)
def create_product():
    try:
        p, receipt = catalog.create_product(db.session, request.get_json(silent=True), current_user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    body = {"success": True, "message": "Producto creado.", "product": product_dict(p, with_stock=True)}
    if receipt is not None:
        body["openingReceipt"] = receipt.reference
    return jsonify(body), 201


@products_bp.put("/<int:product_id>")
@login_required
@require_roles(*Role.PRIVILEGED)
def update_product(product_id: int):
    try:
        p = catalog.update_product(db.session, product_id, request.get_json(silent=True))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({"success": True, "message": "Producto actualizado.", "product": product_dict(p)})


@products_bp.delete("/<int:product_id>")
@login_required
@require_roles(Role.ADMIN)
def delete_product(product_id: int):
    try:
        catalog.deactivate_product(db.session, product_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({"success": True, "message": "Producto desactivado."})
