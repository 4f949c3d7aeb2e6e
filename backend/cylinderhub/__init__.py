# backend/cylinderhub/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # A bad role -> permission mapping must stop startup, not the first request
    from .permissions import validate_role_mapping
    validate_role_mapping()

    from .services import notification_service
    notification_service.init_app(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.cylinders import cylinders_bp
    from .routes.filling import filling_bp
    from .routes.inspections import inspections_bp
    from .routes.sales import sales_bp
    from .routes.maintenance import maintenance_bp
    from .routes.factories import factories_bp
    from .routes.customers import customers_bp
    from .routes.trucks import trucks_bp
    from .routes.events import events_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(cylinders_bp)
    app.register_blueprint(filling_bp)
    app.register_blueprint(inspections_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(maintenance_bp)
    app.register_blueprint(factories_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(trucks_bp)
    app.register_blueprint(events_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
