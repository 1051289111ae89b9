"""Diff engine for stored vs. desired records.

Computes the set of fields an update has to touch. Fields that compare
equal produce no change, so an unchanged record yields an empty diff.
"""
from dataclasses import fields as dataclass_fields
from typing import Any, Iterable, Optional

from .schema import FieldChange, Resource

# Never diffed: identity and server-computed values
COMPUTED_FIELDS = frozenset({
    "id", "uname", "gname", "state", "lcm_state", "instance", "ip",
})


def _normalize(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    return value


def diff_records(
    old: Resource,
    new: Resource,
    fields: Optional[Iterable[str]] = None,
) -> dict[str, FieldChange]:
    """Return the changed fields of ``new`` relative to ``old``.

    Args:
        old: Stored record
        new: Desired record
        fields: Field names to compare; defaults to every non-computed field

    Returns:
        Mapping of field name to FieldChange, in comparison order
    """
    if fields is None:
        fields = [
            f.name for f in dataclass_fields(new)
            if f.name not in COMPUTED_FIELDS
        ]

    changes: dict[str, FieldChange] = {}
    for name in fields:
        before = getattr(old, name, None)
        after = getattr(new, name, None)
        if _normalize(before) != _normalize(after):
            changes[name] = FieldChange(field=name, old=before, new=after)
    return changes


def summarize_diff(changes: dict[str, FieldChange]) -> str:
    """Human-readable summary of a diff."""
    if not changes:
        return "No changes needed"
    return "; ".join(
        f"{change.field}: {change.old!r} -> {change.new!r}"
        for change in changes.values()
    )
