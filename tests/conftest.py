"""
Fixtures compartidas.

- app: aplicación con SQLite en memoria (una sola conexión compartida)
- ids: bodega, ubicaciones, usuarios por rol y dos productos ya creados
- ctx: contexto de aplicación para tests de servicios (usar db.session)
- admin_client / manager_client / staff_client: clientes HTTP con sesión iniciada

Los tests HTTP no deben correr dentro de ctx: Flask-Login guarda el
usuario en g y un contexto compartido mezclaría sesiones.
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app import create_app
from config import Config
from models import db
from models.product import Product
from models.user import Role, User
from models.warehouse import Location, LocationType, Warehouse

PASSWORD = "secret123"


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_DIR = None
    LOG_LEVEL = "WARNING"
    AI_API_KEY = None


def seed_data() -> SimpleNamespace:
    wh = Warehouse(name="Bodega Test", code="WH1", is_active=True)
    db.session.add(wh)
    db.session.flush()

    stock = Location(warehouse_id=wh.id, code="WH1-STOCK", name="Stock", type=LocationType.ZONE)
    rack_a = Location(warehouse_id=wh.id, code="WH1-RACK-A", name="Rack A", type=LocationType.RACK)
    rack_b = Location(warehouse_id=wh.id, code="WH1-RACK-B", name="Rack B", type=LocationType.RACK)
    db.session.add_all([stock, rack_a, rack_b])

    users = {}
    for role in (Role.ADMIN, Role.MANAGER, Role.STAFF):
        u = User(email=f"{role}@test.com", full_name=role.capitalize(), role=role, is_active=True)
        u.set_password(PASSWORD)
        db.session.add(u)
        users[role] = u

    widget = Product(
        name="Widget", sku="WIDGET", cost=Decimal("2.50"), price=Decimal("4.00"),
        reorder_point=Decimal("10"), reorder_quantity=Decimal("50"), lead_time=7,
    )
    gadget = Product(
        name="Gadget", sku="GADGET", cost=Decimal("10.00"), price=Decimal("15.00"),
        reorder_point=Decimal("5"), reorder_quantity=Decimal("20"), lead_time=3,
    )
    db.session.add_all([widget, gadget])
    db.session.commit()

    return SimpleNamespace(
        warehouse=wh.id,
        stock=stock.id,
        rack_a=rack_a.id,
        rack_b=rack_b.id,
        admin=users[Role.ADMIN].id,
        manager=users[Role.MANAGER].id,
        staff=users[Role.STAFF].id,
        widget=widget.id,
        gadget=gadget.id,
    )


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ids(app):
    with app.app_context():
        return seed_data()


@pytest.fixture
def ctx(app, ids):
    with app.app_context():
        yield
        db.session.rollback()


@pytest.fixture
def admin(ctx, ids):
    return db.session.get(User, ids.admin)


@pytest.fixture
def staff(ctx, ids):
    return db.session.get(User, ids.staff)


def _login(app, role: str):
    client = app.test_client()
    resp = client.post("/auth/login", json={"email": f"{role}@test.com", "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def admin_client(app, ids):
    return _login(app, Role.ADMIN)


@pytest.fixture
def manager_client(app, ids):
    return _login(app, Role.MANAGER)


@pytest.fixture
def staff_client(app, ids):
    return _login(app, Role.STAFF)
