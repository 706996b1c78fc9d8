# backend/tillsup/__init__.py
from flask import Flask, g, jsonify, request

from .config import Config
from .errors import AccessControlError
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app binds the engine
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.authz import authz_bp
    from .routes.staff import staff_bp
    from .routes.branches import branches_bp
    from .routes.resources import resources_bp
    from .routes.businesses import businesses_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(authz_bp)
    app.register_blueprint(staff_bp)
    app.register_blueprint(branches_bp)
    app.register_blueprint(resources_bp)
    app.register_blueprint(businesses_bp)

    @app.before_request
    def reset_actor_context():
        # ActorContext is cached per request, never across requests
        g.pop("actor_context", None)

    @app.errorhandler(AccessControlError)
    def handle_access_control_error(exc: AccessControlError):
        # Typed denials are surfaced as-is; never replaced with placeholder data
        return jsonify(exc.to_dict()), exc.status_code

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
