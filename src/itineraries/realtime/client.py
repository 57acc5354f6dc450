"""Fire-and-forget realtime notices to travelers' live sessions.

Notices are POSTed to the realtime gateway's ``/internal/broadcast`` endpoint
as ``{"eventType": ..., "payload": ...}`` from a background worker pool.
``dispatch`` returns immediately; delivery failures (after retries) are
logged and swallowed.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

import httpx
import structlog
from tenacity.wait import wait_base

from itineraries.resilience.retry import resilient_call

logger = structlog.get_logger()

BROADCAST_PATH = "/internal/broadcast"


def is_transient(exc: BaseException) -> bool:
    """Retry on network errors and 5xx responses, not on 4xx."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


class RealtimeNotifier:
    """Detached dispatcher for realtime gateway notices.

    A notifier constructed without a gateway URL is disabled and ignores
    every dispatch.

    Args:
        gateway_url: Base URL of the realtime gateway (empty disables).
        internal_secret: Value for the ``X-Internal-Secret`` header.
        timeout: Per-request timeout in seconds.
        max_workers: Size of the background worker pool.
        client: Optional pre-built ``httpx.Client`` (tests inject a mock).
        wait: Optional tenacity wait strategy override for retries.
    """

    def __init__(
        self,
        gateway_url: str,
        internal_secret: str = "",
        timeout: float = 5.0,
        max_workers: int = 4,
        client: httpx.Client | None = None,
        wait: wait_base | None = None,
    ) -> None:
        self._url = gateway_url.rstrip("/") + BROADCAST_PATH if gateway_url else ""
        self._secret = internal_secret
        self._client = client or httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="realtime"
        )
        self._send = resilient_call("realtime_gateway", wait=wait, retry_if=is_transient)(
            self._post
        )

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    def dispatch(self, event_type: str, payload: dict[str, Any]) -> Future[None] | None:
        """Queue a notice for background delivery and return immediately.

        Args:
            event_type: Gateway event type (e.g. ``"proposal_received"``).
            payload: JSON-serializable notice body.

        Returns:
            The delivery future, or ``None`` when disabled or shut down.
        """
        if not self.enabled:
            return None
        try:
            return self._executor.submit(self._deliver, event_type, payload)
        except RuntimeError:
            logger.warning("Realtime dispatcher is shut down", event_type=event_type)
            return None

    def _deliver(self, event_type: str, payload: dict[str, Any]) -> None:
        try:
            self._send(event_type, payload)
        except Exception:
            logger.warning("Error broadcasting to realtime gateway", event_type=event_type)

    def _post(self, event_type: str, payload: dict[str, Any]) -> None:
        response = self._client.post(
            self._url,
            json={"eventType": event_type, "payload": payload},
            headers={"X-Internal-Secret": self._secret},
        )
        response.raise_for_status()
        logger.debug("Realtime notice delivered", event_type=event_type)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting notices, optionally waiting for queued deliveries."""
        self._executor.shutdown(wait=wait)
        self._client.close()
