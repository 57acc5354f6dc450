"""Best-effort side effects that run after a primary write has committed."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger()


def best_effort(action: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """Call *fn*, logging a warning instead of raising if it fails.

    Args:
        action: Short name of the side effect, for the log record.
        fn: The side effect to run.
    """
    try:
        fn(*args, **kwargs)
    except Exception:
        logger.warning("Side effect failed", action=action, exc_info=True)
