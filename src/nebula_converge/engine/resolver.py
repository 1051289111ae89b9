"""Identity resolution.

Users may reference remote objects by numeric ID or by name. Names are not
unique in OpenNebula, so a name is resolved against the caller's visible
pool and the first match wins.
"""
import logging
from typing import Any, Callable, Iterable, Optional, Union

from ..errors import NotFound

logger = logging.getLogger(__name__)

PoolReader = Callable[[], Iterable[Any]]


def parse_id(ref: Union[int, str, None]) -> Optional[int]:
    """Return ``ref`` as an int when it is integer-like, else None."""
    if ref is None or isinstance(ref, bool):
        return None
    if isinstance(ref, int):
        return ref
    try:
        return int(str(ref).strip())
    except ValueError:
        return None


def find_by_name(name: str, entries: Iterable[Any]) -> Optional[Any]:
    """First pool entry whose ``NAME`` equals ``name`` exactly."""
    for entry in entries:
        if getattr(entry, "NAME", None) == name:
            return entry
    return None


def resolve(
    ref: Union[int, str],
    pool_reader: PoolReader,
    kind: Optional[str] = None,
) -> int:
    """Map an ID-or-name reference to the canonical numeric ID.

    Integer-like references are returned unchecked; the following info call
    verifies existence.

    Raises:
        NotFound: if no pool entry carries the name.
    """
    numeric = parse_id(ref)
    if numeric is not None:
        return numeric

    entry = find_by_name(str(ref), pool_reader())
    if entry is None:
        raise NotFound(f"no entry named {ref!r} in the visible pool", kind, ref)

    logger.debug(f"Resolved {kind or 'resource'} {ref!r} to ID {entry.ID}")
    return int(entry.ID)
