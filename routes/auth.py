from flask import current_app, jsonify, request, session
from flask_login import current_user, login_required, login_user, logout_user

from models import db
from models.user import User
from routes import auth_bp
from routes.guards import json_error


def _user_dict(user: User) -> dict:
    return {"id": user.id, "email": user.email, "name": user.full_name, "role": user.role}


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = db.session.query(User).filter(User.email == email, User.is_active.is_(True)).first()
    if not user or not user.check_password(password):
        current_app.logger.info("Login fallido para %s", email)
        return json_error("Credenciales inválidas", 401, "invalid_credentials")

    login_user(user)
    return jsonify({"success": True, "user": _user_dict(user)})


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    session.clear()
    return jsonify({"success": True, "message": "Sesión cerrada."})


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({"success": True, "user": _user_dict(current_user)})
