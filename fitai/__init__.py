# backend/fitai/__init__.py

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

db = SQLAlchemy()
jwt = JWTManager()


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object("config.Config")
    if config_overrides:
        app.config.update(config_overrides)

    # Init extensions
    db.init_app(app)
    jwt.init_app(app)

    # CORS: allow the SPA to call /api/*
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
        supports_credentials=True,
    )

    # -----------------------------
    # JWT error handlers
    # -----------------------------
    @jwt.unauthorized_loader
    def unauthorized_callback(reason):
        return (
            jsonify(
                {
                    "error": "Not authenticated",
                    "details": reason,
                }
            ),
            401,
        )

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return (
            jsonify(
                {
                    "error": "Invalid auth token",
                    "details": reason,
                }
            ),
            422,
        )

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"error": "Token has expired"}), 401

    # -----------------------------
    # IMPORT BLUEPRINTS (all routes)
    # -----------------------------
    from .routes.dashboard_routes import dashboard_bp
    from .routes.user_routes import users_bp
    from .routes.food_log_routes import food_logs_bp

    # -----------------------------
    # REGISTER BLUEPRINTS
    # -----------------------------
    app.register_blueprint(dashboard_bp, url_prefix="/api/dashboard")
    app.register_blueprint(users_bp, url_prefix="/api/users")
    app.register_blueprint(food_logs_bp, url_prefix="/api/food-logs")

    @app.route("/api/health")
    def health():
        try:
            db.session.execute(text("SELECT 1"))
            connected = True
        except SQLAlchemyError as e:
            app.logger.warning(f"[health] database check failed: {e}")
            db.session.rollback()
            connected = False
        return {"status": "ok", "database": {"connected": connected}}

    @app.errorhandler(404)
    def not_found(_error):
        return (
            jsonify(
                {
                    "message": "Route not found",
                    "path": request.path,
                    "method": request.method,
                }
            ),
            404,
        )

    # -----------------------------
    # DB init
    # -----------------------------
    from . import models  # noqa: F401

    with app.app_context():
        db.create_all()

    return app
