# backend/staffgate/__init__.py
from flask import Flask
from sqlalchemy import inspect

from .config import Config
from .extensions import db, migrate


def install_permission_matrix(app: Flask) -> None:
    """Resolve the role grant matrix once and publish it in app.extensions."""
    from .permissions import build_default_matrix
    from .services.permission_service import MATRIX_EXTENSION_KEY, load_matrix_from_db

    source = app.config.get("PERMISSION_MATRIX_SOURCE", "definitions")
    if source == "definitions":
        matrix = build_default_matrix()
    elif source == "database":
        with app.app_context():
            if inspect(db.engine).has_table("role_permissions"):
                matrix = load_matrix_from_db()
            else:
                app.logger.warning(
                    "role_permissions table missing; using built-in grants until `flask system init` runs"
                )
                matrix = build_default_matrix()
    else:
        raise ValueError(f"Unknown PERMISSION_MATRIX_SOURCE: {source!r}")

    app.extensions[MATRIX_EXTENSION_KEY] = matrix


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

    install_permission_matrix(app)

    from .services.dispatch import DISPATCHER_EXTENSION_KEY, SideEffectDispatcher
    app.extensions[DISPATCHER_EXTENSION_KEY] = SideEffectDispatcher()

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
