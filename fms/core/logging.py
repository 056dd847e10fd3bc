# fms/core/logging.py
"""Logging setup and log-context helpers."""

import logging
from typing import Any


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_log_context(
    *,
    ticket_id: int | None = None,
    site_id: int | None = None,
    user_id: int | None = None,
    event: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict with only the fields that are set."""
    context: dict[str, Any] = {}
    if ticket_id is not None:
        context["ticket_id"] = ticket_id
    if site_id is not None:
        context["site_id"] = site_id
    if user_id is not None:
        context["user_id"] = user_id
    if event:
        context["event"] = event
    return context


def mask_token(token: str | None) -> str:
    if not token:
        return "<none>"
    return token[:10] + "..."
