from __future__ import annotations

import logging

import uvicorn

from habit_tracker.api_app import build_api_app
from habit_tracker.config import load_settings
from habit_tracker.db import Database
from habit_tracker.logging_setup import setup_logging
from habit_tracker.rate_limit import build_rate_limiter, load_rate_limit_config

logger = logging.getLogger(__name__)


def run_api() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    db = Database(settings.database_path)
    limiter = build_rate_limiter(
        load_rate_limit_config(settings.rate_limit_config_path),
        enabled=settings.rate_limiting_enabled,
    )
    app = build_api_app(db, settings, limiter)
    logger.info("starting api on %s:%s tz=%s", settings.api_host, settings.api_port, settings.tz)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
