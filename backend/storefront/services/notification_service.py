# Overview: Post-commit admin notifications published over blinker signals.

"""
Admin notification fan-out.

Services publish order events after their transaction commits. Subscribers
(the realtime bridge, audit hooks, tests) connect to ``admin_event``. The
publish call is one-way: a failing subscriber is logged and never reaches
the caller, and nothing is retried.
"""

from __future__ import annotations

from blinker import Namespace
from flask import current_app

_signals = Namespace()

admin_event = _signals.signal("admin-event")

ORDER_CREATED = "order:created"
ORDER_UPDATED = "order:updated"
ORDER_CANCELLED = "order:cancelled"
ORDER_REFUNDED = "order:refunded"
USER_CREATED = "user:created"


def emit_to_admins(event: str, payload: dict) -> None:
    """Publish an admin event. Never raises."""
    try:
        admin_event.send(current_app._get_current_object(), event=event, payload=payload)
    except Exception:
        current_app.logger.exception("Emit %s failed", event)
