"""Dispatch of aggregate events once their transaction has committed."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from moviehub_auth.models.account import (
    AccountDeleted,
    AccountDisabled,
    AccountEvent,
    AccountLocked,
    AccountRegistered,
)

security_log = logging.getLogger("moviehub_auth.security")

EVENT_NAMES: dict[type[AccountEvent], str] = {
    AccountRegistered: "account.registered",
    AccountLocked: "auth.account_locked",
    AccountDisabled: "account.disabled",
    AccountDeleted: "account.deleted",
}


def publish_events(events: Iterable[AccountEvent]) -> None:
    """Emit one structured security log line per event."""
    for event in events:
        name = EVENT_NAMES.get(type(event), event.name)
        level = logging.WARNING if isinstance(event, AccountLocked) else logging.INFO
        security_log.log(
            level,
            "%s",
            name,
            extra={"event": name, "account_id": event.account_id},
        )


def mask_email(email: str) -> str:
    """Keep the first character and the domain: ``a***@example.com``."""
    local, sep, domain = (email or "").partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"
