"""Email provider configuration utilities."""

from .config import EmailConfig, load_email_config
from .providers import (
    DevPrintProvider,
    EmailProvider,
    SMTPProvider,
    UnconfiguredProvider,
    create_email_provider,
)
from .renderer import build_reset_url, render_password_reset

__all__ = [
    "DevPrintProvider",
    "EmailProvider",
    "EmailConfig",
    "SMTPProvider",
    "UnconfiguredProvider",
    "build_reset_url",
    "create_email_provider",
    "load_email_config",
    "render_password_reset",
]
