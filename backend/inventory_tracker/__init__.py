# backend/inventory_tracker/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Fail at startup rather than on the first stock change
    from .services.notification_service import channel_key
    app.config["NOTIFICATION_CHANNEL"] = channel_key(app.config.get("NOTIFICATION_CHANNEL"))

    # Service module loggers hang off the package logger
    logging.getLogger(__name__).setLevel(app.config.get("LOG_LEVEL", "INFO"))
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.items import items_bp
    from .routes.notifications import notifications_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(notifications_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:4200",
            "http://127.0.0.1:4200",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
