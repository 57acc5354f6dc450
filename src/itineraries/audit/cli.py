"""Command-line access to the itineraries audit trail.

Answers the operational questions the trail exists for: what happened to a
submission, who created each version of an itinerary, and when a booking's
vendor details were revealed or masked again.

Usage::

    itineraries-audit --entity-type submission --entity-id sub_123
    itineraries-audit --event-type itinerary.disclosure_changed --last 7d --format json
"""

from __future__ import annotations

import argparse
import json
import re
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from itineraries.audit.models import AuditEventType, EntityType
from itineraries.audit.store import close_audit_db, init_audit_db, query_audit_trail

_DURATION = re.compile(r"^(\d+)([mhdw])$")
_UNITS = {"m": "minutes", "h": "hours", "d": "days", "w": "weeks"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="itineraries-audit", description="Query the itineraries audit trail"
    )

    filters = parser.add_argument_group("filters")
    filters.add_argument("--entity-type", choices=[e.value for e in EntityType])
    filters.add_argument("--entity-id", help="Submission, itinerary, or booking id")
    filters.add_argument("--actor", help="Acting user or service id")
    filters.add_argument("--event-type", choices=[e.value for e in AuditEventType])
    filters.add_argument("--from-date", help="Earliest timestamp (ISO 8601)")
    filters.add_argument("--to-date", help="Latest timestamp (ISO 8601)")
    filters.add_argument("--last", help="Relative window such as 30m, 24h, 7d or 2w")

    output = parser.add_argument_group("output")
    output.add_argument(
        "--format", dest="output_format", choices=["table", "json"], default="table"
    )
    output.add_argument("--limit", type=int, default=50)
    output.add_argument("--db", default="data/audit.db", help="Audit database path")

    return parser


def parse_last_duration(last: str, now: datetime | None = None) -> str:
    """Turn a relative window like ``7d`` into the ISO timestamp it starts at.

    Args:
        last: A count followed by ``m``, ``h``, ``d`` or ``w``.
        now: Reference time; the current UTC time by default.

    Returns:
        A ``YYYY-MM-DDTHH:MM:SSZ`` string comparable with stored timestamps.

    Raises:
        ValueError: If *last* does not match the expected form.
    """
    match = _DURATION.match(last or "")
    if match is None:
        raise ValueError(f"Unrecognized duration format: {last!r} (expected e.g. 24h or 7d)")
    amount, unit = int(match.group(1)), match.group(2)
    start = (now or datetime.now(tz=UTC)) - timedelta(**{_UNITS[unit]: amount})
    return start.strftime("%Y-%m-%dT%H:%M:%SZ")


def _changes(row: dict[str, Any]) -> str:
    changes = row.get("field_changes") or {}
    return ", ".join(f"{name}: {c.get('from')} -> {c.get('to')}" for name, c in changes.items())


# (header, width, cell)
_COLUMNS: list[tuple[str, int, Callable[[dict[str, Any]], Any]]] = [
    ("Timestamp", 20, lambda r: r.get("timestamp")),
    ("Event", 32, lambda r: r.get("event_type")),
    ("Entity", 28, lambda r: f"{r.get('entity_type')}:{r.get('entity_id')}"),
    ("Actor", 16, lambda r: r.get("actor_id")),
    ("Changes", 40, _changes),
]


def _fit(value: Any, width: int) -> str:
    text = "" if value is None else str(value)
    if len(text) > width:
        text = text[: width - 3] + "..."
    return text.ljust(width)


def format_table(results: list[dict[str, Any]]) -> str:
    """Render entries as fixed-width columns, truncating long cells."""
    if not results:
        return "No results found."

    header = "  ".join(_fit(name, width) for name, width, _ in _COLUMNS).rstrip()
    rows = [
        "  ".join(_fit(cell(row), width) for _, width, cell in _COLUMNS).rstrip()
        for row in results
    ]
    return "\n".join([header, "-" * len(header), *rows])


def format_json(results: list[dict[str, Any]]) -> str:
    return json.dumps(results, indent=2)


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for ``itineraries-audit``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    from_date = args.from_date
    if args.last:
        try:
            from_date = parse_last_duration(args.last)
        except ValueError as exc:
            parser.error(str(exc))

    db_path = Path(args.db)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = init_audit_db(db_path)
    try:
        results = query_audit_trail(
            conn,
            entity_type=args.entity_type,
            entity_id=args.entity_id,
            actor_id=args.actor,
            event_type=args.event_type,
            from_date=from_date,
            to_date=args.to_date,
            limit=args.limit,
        )
    finally:
        close_audit_db(conn)

    print(format_json(results) if args.output_format == "json" else format_table(results))


if __name__ == "__main__":
    main()
