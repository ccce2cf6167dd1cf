from app import create_app
from models import db
from models.product import Product
from models.user import Role, User
from models.warehouse import Location, LocationType, Warehouse
from services.catalog import create_product


DEMO_USERS = [
    ("admin@demo.com", "Admin Demo", Role.ADMIN, "admin1234"),
    ("manager@demo.com", "Encargado Demo", Role.MANAGER, "manager1234"),
    ("staff@demo.com", "Operario Demo", Role.STAFF, "staff1234"),
]

DEMO_LOCATIONS = [
    ("WH1-STOCK", "Stock", LocationType.ZONE),
    ("WH1-RACK-A", "Rack A", LocationType.RACK),
    ("WH1-RACK-B", "Rack B", LocationType.RACK),
]

DEMO_PRODUCTS = [
    {"name": "Tornillo 6mm", "sku": "TOR-6MM", "category": "Ferretería", "cost": "0.10", "price": "0.25",
     "reorderPoint": "200", "reorderQuantity": "1000", "initialStock": "500", "location": "WH1-STOCK"},
    {"name": "Caja de cartón M", "sku": "CAJ-M", "category": "Embalaje", "cost": "0.80", "price": "1.50",
     "unitOfMeasure": "box", "initialStock": "40", "location": "WH1-RACK-A"},
    {"name": "Cinta adhesiva", "sku": "CIN-48", "category": "Embalaje", "cost": "1.20", "price": "2.00"},
]


def run():
    app = create_app()
    with app.app_context():
        # No usamos db.create_all(): primero correr `flask --app app db upgrade`

        # 1) Bodega demo + ubicaciones
        wh = db.session.query(Warehouse).filter_by(code="WH1").first()
        if not wh:
            wh = Warehouse(name="Bodega Principal", code="WH1", address="Av. Demo 123", is_active=True)
            db.session.add(wh)
            db.session.flush()

        for code, name, kind in DEMO_LOCATIONS:
            if not db.session.query(Location).filter_by(code=code).first():
                db.session.add(Location(warehouse_id=wh.id, code=code, name=name, type=kind, is_active=True))

        # 2) Un usuario por rol
        admin = None
        for email, name, role, password in DEMO_USERS:
            user = db.session.query(User).filter_by(email=email).first()
            if not user:
                user = User(email=email, full_name=name, role=role, is_active=True)
                user.set_password(password)
                db.session.add(user)
            else:
                user.is_active = True
            if role == Role.ADMIN:
                admin = user
        db.session.flush()

        # 3) Productos (el stock inicial entra como recepción validada)
        for payload in DEMO_PRODUCTS:
            if not db.session.query(Product).filter_by(sku=payload["sku"]).first():
                create_product(db.session, dict(payload), admin)

        db.session.commit()
        print("Seed listo: admin@demo.com / admin1234")


if __name__ == "__main__":
    run()
