from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from .config import get_settings_module
from .container import Container, build_container
from .core.constants import DEFAULT_IDEMPOTENCY_TTL_HOURS, DEFAULT_SESSION_DAYS
from .core.logging_config import setup_logging
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .database.connection import build_service_connection

from .attendance.controller import register as register_attendance
from .classes.controller import register as register_classes
from .feed_settings.controller import register as register_feed_settings
from .feeds.controller import register as register_feeds
from .reports.controller import register as register_reports
from .timetable.controller import register as register_timetable
from .transfers.controller import register as register_transfers
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[2] / "database"


def register_all(app: Flask, container: Container) -> None:
    register_users(app, container)
    register_classes(app, container)
    register_timetable(app, container)
    register_transfers(app, container)
    register_feeds(app, container)
    register_attendance(app, container)
    register_feed_settings(app, container)
    register_reports(app, container)


def create_app() -> Flask:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.permanent_session_lifetime = timedelta(days=int(getattr(settings, "SESSION_DAYS", DEFAULT_SESSION_DAYS)))

    db_config = getattr(settings, "DB_CONFIG")
    service_db_config = getattr(settings, "SERVICE_DB_CONFIG", None)
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    # Fails fast when the privileged credentials are missing.
    build_service_connection(service_db_config)

    if getattr(settings, "AUTO_INIT_DB", False):
        apply_schema(service_db_config, schema_path=DATABASE_DIR / "schema.sql")
        logger.info("schema ready (tables=%s)", len(list_tables(service_db_config)))
    if getattr(settings, "AUTO_SEED_DB", False):
        ensure_demo_users(service_db_config)
        apply_seed_sql(service_db_config, seed_path=DATABASE_DIR / "seed.sql")
        logger.info("demo seed ready")

    container = build_container(
        db_config=db_config,
        service_db_config=service_db_config,
        idempotency_ttl_hours=int(getattr(settings, "IDEMPOTENCY_TTL_HOURS", DEFAULT_IDEMPOTENCY_TTL_HOURS)),
    )
    register_all(app, container)
    return app
