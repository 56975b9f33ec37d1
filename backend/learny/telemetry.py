"""In-process telemetry and learner notifications."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from threading import RLock
from typing import Any, Callable, Dict, List, Literal

logger = logging.getLogger("learny.telemetry")

NotificationVariant = Literal["default", "destructive"]


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]


_listeners: List[Callable[[TelemetryEvent], None]] = []
_lock = RLock()


def register_listener(listener: Callable[[TelemetryEvent], None]) -> None:
    with _lock:
        _listeners.append(listener)


def unregister_listener(listener: Callable[[TelemetryEvent], None]) -> None:
    with _lock:
        if listener in _listeners:
            _listeners.remove(listener)


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: str, **fields: Any) -> None:
    """Fan a structured event out to listeners and log it as one JSON line."""
    payload = {key: _coerce(value) for key, value in fields.items()}
    event = TelemetryEvent(name=name, payload=payload)

    with _lock:
        listeners = list(_listeners)

    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    logger.info("TELEMETRY %s", json.dumps({"event": name, **payload}, default=str))


def notify_learner(
    name: str,
    learner_id: str | None,
    title: str,
    description: str,
    *,
    variant: NotificationVariant = "default",
    **fields: Any,
) -> None:
    """Emit ``name`` as a toast-style notification addressed to one learner."""
    emit_event(
        name,
        notification=True,
        learner_id=learner_id,
        title=title,
        description=description,
        variant=variant,
        **fields,
    )


def _coerce(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


__all__ = [
    "TelemetryEvent",
    "clear_listeners",
    "emit_event",
    "notify_learner",
    "register_listener",
    "unregister_listener",
]
