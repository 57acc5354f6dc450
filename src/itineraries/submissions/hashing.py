"""Canonical serialization and content hashing for submission dedup.

Two payloads that differ only in key order, insignificant whitespace, omitted
optional fields, or explicitly-defaulted fields produce the same canonical
string and therefore the same hash.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pydantic import BaseModel


def _normalize(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, str):
        return " ".join(value.split())
    return value


def canonicalize(content: BaseModel | dict[str, Any]) -> str:
    """Serialize *content* into its canonical JSON form.

    Pydantic models are dumped in JSON mode first so defaults are applied
    and enums become plain strings.  Nested ``None`` values are dropped, every
    string is trimmed with internal whitespace runs collapsed to one space,
    and keys are sorted with compact separators.

    Args:
        content: A submission content model or an already-dumped mapping.

    Returns:
        The canonical JSON string.
    """
    data = content.model_dump(mode="json") if isinstance(content, BaseModel) else content
    return json.dumps(
        _normalize(data),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def compute_content_hash(content: BaseModel | dict[str, Any]) -> str:
    """Return the SHA-256 hex digest of the canonical form of *content*."""
    return hashlib.sha256(canonicalize(content).encode("utf-8")).hexdigest()
