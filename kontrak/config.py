from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_log = logging.getLogger(__name__)

DEFAULT_PORT = 3000
DEFAULT_MONGODB_URI = "mongodb://127.0.0.1:27017/kontrakdb"
MAX_CONTENT_LENGTH = 10 * 1024 * 1024
TOKEN_TTL = timedelta(hours=24)

ALLOWED_ORIGINS: Tuple[str, ...] = (
    "https://kontrakdigital.netlify.app",
    "https://kontrakdigital.com",
    "http://localhost:3000",
)

APP_ENVS = ("production", "development", "testing")

# Only ever used outside production; production refuses to start without real values.
_DEV_SECRETS = {
    "JWT_SECRET": "dev-only-jwt-secret",
    "FIXED_PASSWORD": "dev-only-contract-password",
    "ADMIN_PASSWORD": "dev-only-admin-password",
}


class ConfigError(RuntimeError):
    """Raised when the process environment cannot produce a usable configuration."""


def _get(environ: Mapping[str, str], name: str) -> str:
    return (environ.get(name) or "").strip()


def _parse_port(raw: str) -> int:
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError as e:
        raise ConfigError(f"PORT must be an integer, got {raw!r}") from e
    if not 0 < port < 65536:
        raise ConfigError(f"PORT must be between 1 and 65535, got {port}")
    return port


@dataclass(frozen=True)
class Settings:
    """
    Process configuration, resolved once at startup and passed to create_app().

    Secrets are never optional in production: a missing JWT_SECRET,
    FIXED_PASSWORD or ADMIN_PASSWORD is a ConfigError there.
    """
    jwt_secret: str
    user_password: str
    admin_password: str
    mongodb_uri: str = DEFAULT_MONGODB_URI
    port: int = DEFAULT_PORT
    host: str = "0.0.0.0"
    admin_email: str = "admin@kontrakdigital.com"
    admin_name: str = "Admin Kontrak Digital"
    app_env: str = "production"
    log_level: str = "INFO"
    timezone: str = "Asia/Jakarta"
    allowed_origins: Tuple[str, ...] = ALLOWED_ORIGINS
    static_dir: Path = field(default_factory=lambda: Path.cwd() / "public")
    max_content_length: int = MAX_CONTENT_LENGTH
    token_ttl: timedelta = TOKEN_TTL

    def __post_init__(self) -> None:
        for name in ("jwt_secret", "user_password", "admin_password", "mongodb_uri"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"Settings.{name} must be a non-empty string")
        if self.app_env not in APP_ENVS:
            raise ConfigError(f"APP_ENV must be one of {', '.join(APP_ENVS)}, got {self.app_env!r}")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigError(f"TIMEZONE is not a known time zone: {self.timezone!r}") from e

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        app_env = _get(env, "APP_ENV").lower() or "production"
        if app_env not in APP_ENVS:
            raise ConfigError(f"APP_ENV must be one of {', '.join(APP_ENVS)}, got {app_env!r}")

        secrets = {name: _get(env, name) for name in _DEV_SECRETS}
        missing = [name for name, value in secrets.items() if not value]
        if missing:
            if app_env == "production":
                raise ConfigError(
                    "Missing required environment variables: " + ", ".join(missing)
                )
            for name in missing:
                _log.warning("%s is not set; using a development-only value", name)
                secrets[name] = _DEV_SECRETS[name]

        return cls(
            jwt_secret=secrets["JWT_SECRET"],
            user_password=secrets["FIXED_PASSWORD"],
            admin_password=secrets["ADMIN_PASSWORD"],
            mongodb_uri=env["MONGODB_URI"] if _get(env, "MONGODB_URI") else DEFAULT_MONGODB_URI,
            port=_parse_port(_get(env, "PORT")),
            host=_get(env, "HOST") or "0.0.0.0",
            admin_email=(_get(env, "ADMIN_EMAIL") or "admin@kontrakdigital.com").lower(),
            admin_name=_get(env, "ADMIN_NAME") or "Admin Kontrak Digital",
            app_env=app_env,
            log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
            timezone=_get(env, "TIMEZONE") or "Asia/Jakarta",
            static_dir=Path.cwd() / "public",
        )
