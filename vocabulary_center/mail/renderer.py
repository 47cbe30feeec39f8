"""Rendering helpers for transactional emails."""
from __future__ import annotations

import html
from typing import Tuple

_HTML_WRAPPER = (
    "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif; line-height: 1.5; color: #0f172a;\">"
    "{content}"
    "</body></html>"
)


def build_reset_url(client_url: str, token: str) -> str:
    return f"{client_url.rstrip('/')}/reset-password?token={token}"


def render_password_reset(reset_url: str, ttl_minutes: int) -> Tuple[str, str, str]:
    """Return ``(subject, text_body, html_body)`` for a password reset email."""

    subject = "Reset your Vocabulary Center password"
    text_body = (
        "A password reset was requested for your Vocabulary Center account.\n\n"
        "Open the link below to choose a new password:\n\n"
        f"{reset_url}\n\n"
        f"This link expires in {ttl_minutes} minutes.\n"
        "If you did not request a reset you can ignore this message.\n"
    )
    safe_url = html.escape(reset_url, quote=True)
    html_body = _HTML_WRAPPER.format(
        content=(
            "<p>A password reset was requested for your Vocabulary Center account.</p>"
            f"<p><a href=\"{safe_url}\" style=\"font-weight: bold;\">Reset your password</a></p>"
            f"<p>This link expires in {ttl_minutes} minutes.</p>"
            "<p>If you did not request a reset you can ignore this message.</p>"
        )
    )
    return subject, text_body, html_body
