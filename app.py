import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify, request
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db, login_manager
from services.errors import InventoryError


migrate = Migrate()


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger("services").setLevel(level)

    log_dir = app.config.get("LOG_DIR")
    if not log_dir:
        return

    os.makedirs(log_dir, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, "app.log"),
        maxBytes=2_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    ))

    for logger in (app.logger, logging.getLogger("services")):
        if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
            logger.addHandler(file_handler)


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)

    # -------------------------
    # Extensiones
    # -------------------------
    db.init_app(app)
    migrate.init_app(app, db)

    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"success": False, "message": "Inicia sesión para continuar.", "error": "unauthorized"}), 401

    # -------------------------
    # Importar modelos (Alembic)
    # -------------------------
    from models.user import User  # noqa: F401
    from models.warehouse import Warehouse, Location  # noqa: F401
    from models.product import Product  # noqa: F401
    from models.stock_level import StockLevel  # noqa: F401
    from models.stock_move import StockMove  # noqa: F401
    from models.sequence import DocumentSequence  # noqa: F401
    from models.documents import (  # noqa: F401
        Receipt, ReceiptLine, Delivery, DeliveryLine,
        Transfer, TransferLine, Adjustment, AdjustmentLine,
    )

    # -------------------------
    # Blueprints
    # -------------------------
    from routes.auth import auth_bp
    from routes.main import main_bp
    from routes.operations import operations_bp
    from routes.products import products_bp
    from routes.dashboard import dashboard_bp
    from routes.ai import ai_bp

    blueprints = [
        auth_bp,
        main_bp,

        # Operación
        operations_bp,
        products_bp,

        # Reportes
        dashboard_bp,
        ai_bp,
    ]

    for bp in blueprints:
        app.register_blueprint(bp)

    # -------------------------
    # Logging + manejo global de errores
    # -------------------------
    _configure_logging(app)

    @app.errorhandler(InventoryError)
    def _handle_inventory_error(e):
        if e.status_code >= 500:
            app.logger.exception("%s en %s %s", e.code, request.method, request.path)
        else:
            app.logger.info("%s en %s %s: %s", e.code, request.method, request.path, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def _handle_http(e):
        return jsonify({"success": False, "message": e.description, "error": e.name.lower().replace(" ", "_")}), e.code

    @app.errorhandler(500)
    def _handle_500(e):
        app.logger.exception("Error 500 no manejado: %s %s", request.method, request.path)
        return jsonify({"success": False, "message": "Ocurrió un error interno. El problema fue registrado."}), 500

    return app


if __name__ == "__main__":
    app = create_app()
    # Debug controlado por config / variables de entorno
    app.run(debug=app.config.get("DEBUG", False))
