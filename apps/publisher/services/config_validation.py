"""All-or-none field validation shared by provider configurations."""

from collections.abc import Sequence
from typing import Any


class CdnConfigError(ValueError):
    """Raised when a CDN provider configuration is incomplete or unreadable."""

    pass


def _is_filled(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def check_all_or_none(obj: Any, fields: Sequence[str]) -> str | None:
    """
    Return None when every named field on obj is filled or every one is empty.
    Otherwise return a message naming the group. Works on objects and on mappings.
    """
    if isinstance(obj, dict):
        values = [obj.get(name) for name in fields]
    else:
        values = [getattr(obj, name, None) for name in fields]
    filled = [_is_filled(v) for v in values]
    if all(filled) or not any(filled):
        return None
    return f"Either all or none of the fields [{', '.join(fields)}] must be filled."


def require_all_or_none(obj: Any, fields: Sequence[str], message: str | None = None) -> None:
    """Raise CdnConfigError when check_all_or_none fails."""
    problem = check_all_or_none(obj, fields)
    if problem is not None:
        raise CdnConfigError(f"{message} {problem}" if message else problem)


def require_filled(obj: Any, fields: Sequence[str], provider: str) -> None:
    """Raise CdnConfigError naming the first empty field. Used before any provider call."""
    for name in fields:
        value = obj.get(name) if isinstance(obj, dict) else getattr(obj, name, None)
        if not _is_filled(value):
            raise CdnConfigError(f"{provider}: {name} is required")
