"""Outbound email settings and the environment parsing helpers shared with ``config``."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = (env.get(key) or "").strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return default


def env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


def env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class EmailConfig:
    """SMTP credentials and sender identity for transactional mail."""

    provider_name: str
    from_email: str
    smtp_host: str
    smtp_port: int
    smtp_username: Optional[str]
    smtp_password: Optional[str]
    smtp_use_tls: bool
    smtp_timeout_seconds: float

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_username and self.smtp_password)


def load_email_config(env: Optional[Mapping[str, str]] = None) -> EmailConfig:
    """SMTP is selected automatically once ``SMTP_USER`` and ``SMTP_PASS`` are present."""

    env_mapping = os.environ if env is None else env

    username = env_mapping.get("SMTP_USER") or None
    password = env_mapping.get("SMTP_PASS") or None
    provider_name = (env_mapping.get("EMAIL_PROVIDER") or "").strip().lower()
    if not provider_name:
        provider_name = "smtp" if username and password else "dev"

    return EmailConfig(
        provider_name=provider_name,
        from_email=env_mapping.get("FROM_EMAIL", "noreply@vocabulary-center.local"),
        smtp_host=env_mapping.get("SMTP_HOST", "smtp.gmail.com"),
        smtp_port=env_int(env_mapping, "SMTP_PORT", 587),
        smtp_username=username,
        smtp_password=password,
        smtp_use_tls=env_bool(env_mapping, "SMTP_USE_TLS", True),
        smtp_timeout_seconds=max(1.0, env_float(env_mapping, "SMTP_TIMEOUT", 30.0)),
    )
