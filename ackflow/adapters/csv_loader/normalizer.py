"""CSV cell and header normalization for directory imports."""

from __future__ import annotations

import re

_TRUE_VALUES = frozenset({"1", "true", "yes", "y", "active"})
_FALSE_VALUES = frozenset({"0", "false", "no", "n", "inactive"})


def normalize_column_name(name: str) -> str:
    """Lowercase, BOM-free, underscore-separated header name.

    ``"\\ufeffManager ID "`` becomes ``"manager_id"``.
    """
    name = name.replace("\ufeff", "").strip().lower()
    name = re.sub(r"[\s\u00a0\-]+", "_", name)
    return re.sub(r"[^\w]", "", name)


def clean_string(value: str | None) -> str | None:
    """Strip whitespace and return None for empty strings."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def parse_tags(raw: str | None) -> frozenset[str]:
    """Split ``"safety; onboarding, lab"`` into a set of lowercase tags."""
    if not raw:
        return frozenset()
    return frozenset(p.strip().lower() for p in re.split(r"[,;|]+", raw) if p.strip())


def parse_bool(raw: str | None, default: bool = True) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default
