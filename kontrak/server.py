from __future__ import annotations

import logging
import sys
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from pymongo.errors import PyMongoError

from kontrak import create_app
from kontrak.config import ConfigError, Settings
from kontrak.db.repository import MongoContractRepository
from kontrak.services.auth_service import hash_password

_log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def connect_database(repository: MongoContractRepository, settings: Settings) -> bool:
    """
    Connect, create indexes and seed the first admin.

    A failure is logged and leaves the repository disconnected; the HTTP
    server still starts and reports the state on /api/health.
    """
    _log.info("Connecting to MongoDB")
    try:
        repository.connect()
        created = repository.ensure_admin(
            name=settings.admin_name,
            email=settings.admin_email,
            password_hash=hash_password(settings.admin_password),
        )
    except PyMongoError:
        _log.exception("MongoDB connection failed")
        return False

    _log.info("MongoDB connected")
    if created:
        _log.info("Seeded admin account %s", settings.admin_email)
    return True


def bootstrap(settings: Settings, repository: Optional[MongoContractRepository] = None) -> Flask:
    configure_logging(settings.log_level)
    repository = repository or MongoContractRepository(settings.mongodb_uri, tz=settings.tz)
    connect_database(repository, settings)
    app = create_app(settings, repository)

    _log.info(
        "Ready on %s:%d (env=%s, database=%s, origins=%s)",
        settings.host,
        settings.port,
        settings.app_env,
        "connected" if repository.connected else "disconnected",
        ", ".join(settings.allowed_origins),
    )
    return app


def load_settings() -> Settings:
    load_dotenv()
    try:
        return Settings.from_env()
    except ConfigError as e:
        configure_logging()
        _log.critical("Invalid configuration: %s", e)
        sys.exit(1)


def main() -> None:
    settings = load_settings()
    app = bootstrap(settings)
    app.run(host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
