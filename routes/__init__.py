from flask import Blueprint, current_app, request

from services.payloads import to_int

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")
main_bp = Blueprint("main", __name__)


def page_args(default_limit: int | None = None) -> tuple[int, int]:
    """page/limit desde el query string, acotados por la config."""
    cfg = current_app.config
    default = default_limit or int(cfg.get("DEFAULT_PAGE_SIZE", 10))
    max_size = int(cfg.get("MAX_PAGE_SIZE", 100))

    page = max(to_int(request.args.get("page"), 1), 1)
    limit = to_int(request.args.get("limit"), default)
    if limit < 1:
        limit = default
    return page, min(limit, max_size)
