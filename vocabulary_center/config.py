"""Process-wide configuration, loaded once at startup."""
from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional, Tuple

from .mail.config import EmailConfig, env_bool, env_float, env_int, load_email_config

ENVIRONMENTS = {"development", "production", "test"}


@dataclass(frozen=True)
class AppConfig:
    """Settings shared by every component of the storefront."""

    environment: str
    db_host: str
    db_port: int
    db_name: str
    db_user: str
    db_password: str
    db_connect_timeout: int
    jwt_secret_key: str
    jwt_exp_minutes: int
    session_cookie_name: str
    session_cookie_secure: bool
    client_url: str
    backend_url: str
    stripe_secret_key: Optional[str]
    stripe_webhook_secret: Optional[str]
    stripe_api_base: str
    google_client_id: Optional[str]
    google_client_secret: Optional[str]
    google_callback_url: str
    password_reset_ttl_minutes: int
    reset_token_bytes: int
    http_timeout_seconds: float
    cors_origins: Tuple[str, ...]
    email: EmailConfig
    jwt_algorithm: str = "HS256"
    webhook_tolerance_seconds: int = 300

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def google_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def session_max_age_seconds(self) -> int:
        return self.jwt_exp_minutes * 60

    def db_params(self) -> dict:
        return dict(
            host=self.db_host,
            port=self.db_port,
            dbname=self.db_name,
            user=self.db_user,
            password=self.db_password,
            connect_timeout=self.db_connect_timeout,
        )


def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def _parse_jwt_expiry(raw_value: Optional[str]) -> int:
    """Accept minutes (``10080``) or the ``7d``/``12h``/``30m`` shorthand."""

    if raw_value is None or raw_value.strip() == "":
        return 60 * 24 * 7
    value = raw_value.strip().lower()
    multipliers = {"d": 60 * 24, "h": 60, "m": 1}
    unit = multipliers.get(value[-1])
    amount = value[:-1] if unit else value
    try:
        return int(amount) * (unit or 1)
    except ValueError as exc:
        raise ValueError(f"JWT_EXPIRES_IN must look like 10080, 7d, 12h or 30m, got {raw_value!r}") from exc


def load_app_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build an :class:`AppConfig` from a mapping of environment variables."""

    env_mapping = os.environ if env is None else env

    environment = (env_mapping.get("APP_ENV") or env_mapping.get("NODE_ENV") or "development").strip().lower()
    if environment not in ENVIRONMENTS:
        raise ValueError(f"APP_ENV must be one of {sorted(ENVIRONMENTS)}, got {environment!r}")
    production = environment == "production"

    jwt_secret = env_mapping.get("JWT_SECRET") or env_mapping.get("JWT_SECRET_KEY")
    if not jwt_secret:
        if production:
            raise ValueError("JWT_SECRET must be set in production")
        jwt_secret = "dev-secret-change-me"

    backend_url = env_mapping.get("BACKEND_URL", "http://localhost:5000").rstrip("/")
    client_url = env_mapping.get("CLIENT_URL", "http://localhost:3000").rstrip("/")
    cors_raw = env_mapping.get("CORS_ORIGINS") or client_url
    cors_origins = tuple(origin.strip() for origin in cors_raw.split(",") if origin.strip())

    return AppConfig(
        environment=environment,
        db_host=env_mapping.get("DB_HOST", "127.0.0.1"),
        db_port=env_int(env_mapping, "DB_PORT", 5432),
        db_name=env_mapping.get("DB_NAME", "vocabulary_center"),
        db_user=env_mapping.get("DB_USER", "vocab_user"),
        db_password=env_mapping.get("DB_PASSWORD", "vocab_pass"),
        db_connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT", "5")),
        jwt_secret_key=jwt_secret,
        jwt_exp_minutes=_parse_jwt_expiry(env_mapping.get("JWT_EXPIRES_IN")),
        session_cookie_name=env_mapping.get("SESSION_COOKIE_NAME", "token"),
        session_cookie_secure=env_bool(env_mapping, "SESSION_COOKIE_SECURE", production),
        client_url=client_url,
        backend_url=backend_url,
        stripe_secret_key=env_mapping.get("STRIPE_SECRET_KEY") or None,
        stripe_webhook_secret=env_mapping.get("STRIPE_WEBHOOK_SECRET") or None,
        stripe_api_base=env_mapping.get("STRIPE_API_BASE", "https://api.stripe.com/v1").rstrip("/"),
        google_client_id=env_mapping.get("GOOGLE_CLIENT_ID") or None,
        google_client_secret=env_mapping.get("GOOGLE_CLIENT_SECRET") or None,
        google_callback_url=env_mapping.get(
            "GOOGLE_CALLBACK_URL", f"{backend_url}/api/auth/google/callback"
        ),
        password_reset_ttl_minutes=max(1, env_int(env_mapping, "PASSWORD_RESET_TTL_MINUTES", 60)),
        reset_token_bytes=max(16, env_int(env_mapping, "RESET_TOKEN_BYTES", 32)),
        http_timeout_seconds=max(0.5, env_float(env_mapping, "HTTP_TIMEOUT_SECONDS", 10.0)),
        cors_origins=cors_origins,
        email=load_email_config(env_mapping),
    )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    return load_app_config()


__all__ = ["AppConfig", "get_app_config", "load_app_config"]
