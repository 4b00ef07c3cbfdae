"""
Runtime configuration for the survey intake backend.

Values come from the process environment, optionally seeded from a .env
file in the project root. Variables already present in the environment
take precedence over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

DEFAULT_PORT = 4000
# Insecure fallback; operators must set ADMIN_KEY in production.
DEFAULT_ADMIN_KEY = "YourStrongAdminKey123"
DEFAULT_DB_PATH = os.path.join(BASE_DIR, "data", "aam_survey.db")
DEFAULT_LOG_PATH = os.path.join(BASE_DIR, "logs", "app.log")
DEFAULT_CORS_ORIGIN = "*"


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one application instance."""

    port: int = DEFAULT_PORT
    admin_key: str = DEFAULT_ADMIN_KEY
    db_path: str = DEFAULT_DB_PATH
    log_path: str = DEFAULT_LOG_PATH
    cors_origin: str = DEFAULT_CORS_ORIGIN

    @property
    def uses_default_admin_key(self) -> bool:
        return self.admin_key == DEFAULT_ADMIN_KEY


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _resolve_path(value: str | None, fallback: str) -> str:
    """Resolve relative paths against the project root."""
    if not value:
        return fallback
    if value == ":memory:" or os.path.isabs(value):
        return value
    return os.path.join(BASE_DIR, value)


def load_settings(env: Mapping[str, str] | None = None, dotenv_path: str | None = None) -> Settings:
    """
    Build Settings from an environment mapping.

    When env is None the real process environment is used, after loading
    the .env file (if any) without overriding existing variables.
    """
    if env is None:
        load_dotenv(dotenv_path or os.path.join(BASE_DIR, ".env"), override=False)
        env = os.environ

    return Settings(
        port=_env_int(env, "PORT", DEFAULT_PORT),
        admin_key=env.get("ADMIN_KEY") or DEFAULT_ADMIN_KEY,
        db_path=_resolve_path(env.get("DB_PATH"), DEFAULT_DB_PATH),
        log_path=_resolve_path(env.get("LOG_PATH"), DEFAULT_LOG_PATH),
        cors_origin=env.get("CORS_ORIGIN") or DEFAULT_CORS_ORIGIN,
    )
