"""Error reporting to Sentry.

Vendor details are the one thing this service must never leak, so every
outgoing event passes through :func:`scrub_event`, which drops request bodies
and masks anything that looks like a carrier or vendor field before the SDK
ships it.
"""

from __future__ import annotations

import logging
from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor

_MASK = "[Filtered]"
_SENSITIVE_KEYS = ("vendor", "carrier", "agent_notes", "secret", "signature")


def _is_sensitive(key: Any) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in _SENSITIVE_KEYS)


def _mask(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _MASK if _is_sensitive(k) else _mask(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_mask(v) for v in value]
    return value


def scrub_event(event: dict[str, Any], hint: dict[str, Any] | None = None) -> dict[str, Any]:
    """``before_send`` hook that strips request bodies and vendor fields."""
    request = event.get("request")
    if isinstance(request, dict):
        request.pop("data", None)
    for section in ("extra", "contexts"):
        if section in event:
            event[section] = _mask(event[section])
    return event


def init_sentry(dsn: str, *, environment: str = "development") -> bool:
    """Start the Sentry SDK when *dsn* is configured.

    Args:
        dsn: Project DSN; an empty string leaves Sentry disabled.
        environment: Tag attached to every reported event.

    Returns:
        Whether the SDK was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=scrub_event,
        # structlog-sentry reports errors; the stdlib integration stays quiet.
        integrations=[LoggingIntegration(event_level=None, level=None)],
    )
    return True


def get_sentry_processor() -> structlog.types.Processor:
    """Structlog processor forwarding ERROR events; place it before the renderer."""
    return SentryProcessor(event_level=logging.ERROR)
