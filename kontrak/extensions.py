"""Per-app handles shared by the blueprints.

Settings and the repository are attached once in :func:`kontrak.create_app`
and looked up through the current app, never through module globals.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Flask, current_app

from kontrak.config import Settings

if TYPE_CHECKING:
    from kontrak.db.repository import MongoContractRepository

SETTINGS_KEY = "kontrak.settings"
REPOSITORY_KEY = "kontrak.repository"


def init_app(app: Flask, settings: Settings, repository: "MongoContractRepository") -> None:
    app.extensions[SETTINGS_KEY] = settings
    app.extensions[REPOSITORY_KEY] = repository


def get_settings() -> Settings:
    return current_app.extensions[SETTINGS_KEY]


def get_repository() -> "MongoContractRepository":
    return current_app.extensions[REPOSITORY_KEY]
