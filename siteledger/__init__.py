"""
SiteLedger
Flask Application Factory.

Usage:
    from siteledger import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from siteledger.config import config
from siteledger.models import db
from siteledger.middleware.logging_config import configure_logging
from siteledger.middleware.timing import init_request_timing
from siteledger.middleware.jwt_auth import init_jwt_middleware
from siteledger.middleware.org_context import init_org_context
from siteledger.middleware.rate_limiter import init_rate_limits
from siteledger.services.change_feed import install_session_hooks
from siteledger.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),  # Redis in production, memory for dev
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_cls = config[config_name]
    # ProductionConfig validates its environment on instantiation
    app.config.from_object(config_cls())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing → JWT → organization context ──────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)
    init_org_context(app)

    # ── Change feed (publish committed OrgModel writes) ──────────────────
    install_session_hooks()

    # ── Import all models so Alembic can detect them ─────────────────────
    from siteledger.models import auth as _auth_models           # noqa: F401
    from siteledger.models import project as _project_models     # noqa: F401
    from siteledger.models import labour as _labour_models       # noqa: F401
    from siteledger.models import materials as _materials_models  # noqa: F401
    from siteledger.models import portal as _portal_models       # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if config_name == "development":
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        db.create_all()
        app.logger.info("db.create_all() completed successfully")

    # ── Blueprints ───────────────────────────────────────────────────────
    from siteledger.blueprints.auth_bp import auth_bp
    from siteledger.blueprints.health_bp import health_bp
    from siteledger.blueprints.organization_bp import organization_bp
    from siteledger.blueprints.member_bp import member_bp
    from siteledger.blueprints.project_bp import project_bp
    from siteledger.blueprints.report_bp import report_bp
    from siteledger.blueprints.labour_bp import labour_bp
    from siteledger.blueprints.materials_bp import materials_bp
    from siteledger.blueprints.portal_bp import portal_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(health_bp)
    app.register_blueprint(organization_bp)
    app.register_blueprint(member_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(report_bp)
    app.register_blueprint(labour_bp)
    app.register_blueprint(materials_bp)
    app.register_blueprint(portal_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Seed a demo organization tree with sample project data."""
        from siteledger.services.seed_service import seed_demo
        summary = seed_demo()
        db.session.commit()
        logger.info("Seeded demo data: %s", summary)
        print(f"Demo data created. Owner login: {summary['owner_email']} / {summary['password']}")

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return {"error": "Not found", "path": request.path}, 404
        return e

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
