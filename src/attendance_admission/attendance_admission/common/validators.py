from __future__ import annotations

from typing import Any, Mapping, Sequence

from ..core.exceptions import MissingFields, ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_fields(body: Mapping[str, Any] | None, fields: Sequence[str]) -> Mapping[str, Any]:
    """Fail with MissingFields listing every absent or blank field."""
    body = body if isinstance(body, Mapping) else {}
    missing = [f for f in fields if body.get(f) is None or (isinstance(body.get(f), str) and not body[f].strip())]
    if missing:
        raise MissingFields(missing)
    return body


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
