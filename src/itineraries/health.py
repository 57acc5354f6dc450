"""Liveness and readiness probes.

``GET /health`` answers as long as the process is serving requests.
``GET /ready`` answers 200 only when every storage probe succeeds, and 503
with a per-probe breakdown otherwise.
"""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Callable
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


def _ping_database(services: dict[str, Any]) -> None:
    services["db"].ping()


def _ping_audit_db(services: dict[str, Any]) -> None:
    services["audit_conn"].execute("SELECT 1")


# Readiness probe name -> blocking check that raises on failure.
PROBES: dict[str, Callable[[dict[str, Any]], None]] = {
    "database": _ping_database,
    "audit_db": _ping_audit_db,
}


async def _run_probe(name: str, probe: Callable[[dict[str, Any]], None], services: dict) -> str:
    try:
        await asyncio.to_thread(probe, services)
    except (KeyError, AttributeError, sqlite3.Error) as exc:
        logger.warning("readiness_probe_failed", probe=name, error=str(exc))
        return "fail"
    return "ok"


def register_health_routes(app: FastAPI) -> None:
    """Attach ``/health`` and ``/ready`` to *app*."""

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        services: dict[str, Any] = request.app.state.services
        checks = {name: await _run_probe(name, probe, services) for name, probe in PROBES.items()}
        ok = all(result == "ok" for result in checks.values())
        return JSONResponse(
            content={"status": "ready" if ok else "not_ready", "checks": checks},
            status_code=200 if ok else 503,
        )
