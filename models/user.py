from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from . import db, login_manager


class Role:
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"

    ALL = {ADMIN, MANAGER, STAFF}
    # Roles que pueden crear/validar documentos que mueven stock
    PRIVILEGED = (ADMIN, MANAGER)


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(180), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(120), nullable=False)

    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(20), nullable=False, default=Role.STAFF)  # admin / manager / staff

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} role={self.role}>"


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, int(user_id))
