from functools import wraps

from flask import jsonify
from flask_login import current_user


def json_error(message: str, status: int, code: str):
    return jsonify({"success": False, "message": message, "error": code}), status


def require_roles(*allowed_roles):
    """Valida sesión activa y rol permitido (401 sin sesión, 403 sin permiso).

    Se usa junto a @login_required; aquí se vuelve a chequear para que
    el decorador sirva solo.
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return json_error("Inicia sesión para continuar.", 401, "unauthorized")

            if current_user.role not in allowed_roles:
                return json_error("No tienes permisos para esta operación.", 403, "forbidden")

            return fn(*args, **kwargs)

        return wrapper

    return decorator
