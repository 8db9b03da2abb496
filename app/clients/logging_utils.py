"""Keep credentials out of structured log fields."""

from __future__ import annotations

import re
from typing import Any

REDACTED = "***REDACTED***"

# Upstream error messages can echo request headers or query strings
_CREDENTIAL_PATTERNS = (
    re.compile(r"(?i)\b(bearer\s+)[\w.~+/=-]+"),
    re.compile(r"(?i)\b((?:access_)?token=)[^&\s)]+"),
    re.compile(r"\b(sk-(?:or-)?)[\w-]{8,}"),
)
_SECRET_FIELDS = ("token", "key", "secret", "password", "authorization")


def scrub(text: str) -> str:
    for pattern in _CREDENTIAL_PATTERNS:
        text = pattern.sub(rf"\1{REDACTED}", text)
    return text


def _is_secret_field(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in _SECRET_FIELDS)


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return scrub(value)
    if isinstance(value, dict):
        return {
            str(name): REDACTED if _is_secret_field(str(name)) else _clean(item)
            for name, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_clean(item) for item in value]
    return value


def sanitize_log_extra(**fields: Any) -> dict[str, Any]:
    """Build an `extra=` mapping with secret fields masked and error text scrubbed."""

    return {name: REDACTED if _is_secret_field(name) else _clean(value) for name, value in fields.items()}
