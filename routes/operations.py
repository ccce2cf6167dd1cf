"""
/operations: recepciones, entregas, transferencias y ajustes + historial de movimientos.

Cada mutación es una sola transacción: commit si todo salió bien,
rollback ante cualquier excepción (el handler global arma la respuesta).
"""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from models import db
from models.user import Role
from routes import page_args
from routes.guards import require_roles
from services.document_kinds import KINDS
from services.documents import create_document, get_document, list_documents, validate_document
from services.moves import query_moves
from services.serializers import document_dict, move_dict

operations_bp = Blueprint("operations", __name__, url_prefix="/operations")

# segmento de URL -> (tipo, quién puede crear)
ROUTES = {
    "receipts": ("receipt", Role.PRIVILEGED),
    "deliveries": ("delivery", Role.PRIVILEGED),
    "transfers": ("transfer", tuple(Role.ALL)),
    "adjustments": ("adjustment", Role.PRIVILEGED),
}

LABELS = {
    "receipt": ("Recepción", "a"),
    "delivery": ("Entrega", "a"),
    "transfer": ("Transferencia", "a"),
    "adjustment": ("Ajuste", "o"),
}


def _message(kind_name: str, reference: str, verb: str) -> str:
    label, ending = LABELS[kind_name]
    return f"{label} {reference} {verb}{ending}."


def _list_view(kind_name: str, plural: str):
    @login_required
    def view():
        page, limit = page_args()
        docs, count, total_pages = list_documents(
            db.session, kind_name, status=request.args.get("status"), page=page, limit=limit
        )
        kind = KINDS[kind_name]
        return jsonify({
            "success": True,
            "count": count,
            "totalPages": total_pages,
            "currentPage": page,
            plural: [document_dict(kind, d) for d in docs],
        })

    return view


def _detail_view(kind_name: str):
    @login_required
    def view(doc_id: int):
        kind = KINDS[kind_name]
        doc = get_document(db.session, kind_name, doc_id)
        return jsonify({"success": True, kind.payload_key: document_dict(kind, doc)})

    return view


def _create_view(kind_name: str, roles):
    @login_required
    @require_roles(*roles)
    def view():
        kind = KINDS[kind_name]
        payload = request.get_json(silent=True)
        try:
            doc = create_document(db.session, kind_name, payload, current_user)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        return jsonify({
            "success": True,
            "message": _message(kind_name, doc.reference, "cread"),
            kind.payload_key: document_dict(kind, doc),
        }), 201

    return view


def _validate_view(kind_name: str):
    @login_required
    @require_roles(*Role.PRIVILEGED)
    def view(doc_id: int):
        kind = KINDS[kind_name]
        data = request.get_json(silent=True) or {}
        overrides = data.get("products") if isinstance(data, dict) else None
        try:
            doc, moves = validate_document(db.session, kind_name, doc_id, current_user, overrides=overrides)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        current_app.logger.info("%s %s validado (%s movimientos)", kind_name, doc.reference, len(moves))
        return jsonify({
            "success": True,
            "message": _message(kind_name, doc.reference, "validad"),
            kind.payload_key: document_dict(kind, doc),
            "moves": [move_dict(m) for m in moves],
        })

    return view


for _plural, (_kind, _roles) in ROUTES.items():
    operations_bp.add_url_rule(
        f"/{_plural}", f"list_{_plural}", _list_view(_kind, _plural), methods=["GET"]
    )
    operations_bp.add_url_rule(
        f"/{_plural}", f"create_{_plural}", _create_view(_kind, _roles), methods=["POST"]
    )
    operations_bp.add_url_rule(
        f"/{_plural}/<int:doc_id>", f"get_{_plural}", _detail_view(_kind), methods=["GET"]
    )
    operations_bp.add_url_rule(
        f"/{_plural}/<int:doc_id>/validate", f"validate_{_plural}", _validate_view(_kind), methods=["PUT"]
    )


@operations_bp.get("/moves")
@login_required
def moves():
    page, limit = page_args(default_limit=20)
    args = request.args
    rows, count, total_pages = query_moves(
        db.session,
        product=args.get("product"),
        document_type=args.get("documentType"),
        status=args.get("status"),
        start_date=args.get("startDate"),
        end_date=args.get("endDate"),
        page=page,
        limit=limit,
    )
    return jsonify({
        "success": True,
        "count": count,
        "totalPages": total_pages,
        "currentPage": page,
        "moves": [move_dict(m) for m in rows],
    })
