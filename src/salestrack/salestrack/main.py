from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.errors import register_error_handlers
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_superadmin, list_tables
from .notifications.scheduler import start_date_sweep
from .attendance.controller import register as register_attendance
from .entries.controller import register as register_entries
from .notifications.controller import register as register_notifications
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    if container is None:
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if getattr(settings, "AUTO_INIT_DB", False):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            ensure_superadmin(
                db_config,
                email=getattr(settings, "SUPERADMIN_EMAIL"),
                password=getattr(settings, "SUPERADMIN_PASSWORD"),
            )

        container = build_container(
            db_config=db_config,
            jwt_secret=getattr(settings, "JWT_SECRET"),
            token_expire_days=int(getattr(settings, "TOKEN_EXPIRE_DAYS", 30)),
        )

        if getattr(settings, "ENABLE_DATE_SWEEP", False):
            sched = start_date_sweep(
                container.notification_service,
                hour=int(getattr(settings, "DATE_SWEEP_HOUR", 0)),
                minute=int(getattr(settings, "DATE_SWEEP_MINUTE", 5)),
            )
            app.extensions["date_sweep"] = sched
            atexit.register(lambda: sched.shutdown(wait=False))

    app.extensions["container"] = container

    register_error_handlers(app)
    register_users(app, container)
    register_entries(app, container)
    register_attendance(app, container)
    register_notifications(app, container)

    return app
