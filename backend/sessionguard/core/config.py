"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Final

from dotenv import load_dotenv

# Public selector env var
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Load .env when present (no-op otherwise)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    return default if val is None or not val.strip() else int(val)


def env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    return default if val is None or not val.strip() else float(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY / JWT_SECRET_KEY: str
        Flask and ``flask-jwt-extended`` signing keys; override in production.
    JWT_ACCESS_TOKEN_EXPIRES: timedelta
        Access token lifetime (``JWT_ACCESS_TOKEN_MINUTES``, 15 by default).
    SQLALCHEMY_DATABASE_URI: str
        Database connection string for user records.
    STATE_STORE_URL: str
        Redis URL of the credential state store. Empty selects the
        in-process store.
    STATE_STORE_TIMEOUT: float
        Seconds a store call may wait (lock acquisition or socket timeout)
        before it is reported unavailable.
    STATE_STORE_SWEEP_INTERVAL: int
        Seconds between background sweeps of expired entries; ``0`` disables
        the sweeper (lazy expiry still applies).
    FORCE_LOGOUT_TTL: int
        Lifetime of a forced-logout marker in seconds.
    LOGIN_MAX_ATTEMPTS / LOGIN_ATTEMPT_WINDOW: int
        Failed-login threshold and its sliding window in seconds.
    STATE_DEBUG_ENDPOINTS: bool
        Exposes ``GET /api/v1/admin/state``.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT_SECRET_AT_LEAST_32_BYTES")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=env_int("JWT_ACCESS_TOKEN_MINUTES", 15))
    JWT_TOKEN_LOCATION = ["headers"]

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Credential state store
    STATE_STORE_URL = os.getenv("STATE_STORE_URL", "")
    STATE_STORE_TIMEOUT = env_float("STATE_STORE_TIMEOUT", 0.25)
    STATE_STORE_SWEEP_INTERVAL = env_int("STATE_STORE_SWEEP_INTERVAL", 60)
    FORCE_LOGOUT_TTL = env_int("FORCE_LOGOUT_TTL", 24 * 60 * 60)
    LOGIN_MAX_ATTEMPTS = env_int("LOGIN_MAX_ATTEMPTS", 5)
    LOGIN_ATTEMPT_WINDOW = env_int("LOGIN_ATTEMPT_WINDOW", 15 * 60)
    STATE_DEBUG_ENDPOINTS = env_bool("STATE_DEBUG_ENDPOINTS", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Debug mode on, and the state introspection endpoint enabled unless
    ``STATE_DEBUG_ENDPOINTS`` says otherwise.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    STATE_DEBUG_ENDPOINTS = env_bool("STATE_DEBUG_ENDPOINTS", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Always uses the in-process state store with the sweeper disabled, so
      expiry in tests is driven by lazy purging only.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    STATE_STORE_URL = ""
    STATE_STORE_SWEEP_INTERVAL = 0
    STATE_DEBUG_ENDPOINTS = True
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    STATE_DEBUG_ENDPOINTS = False
    PROPAGATE_EXCEPTIONS = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
