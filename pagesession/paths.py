"""
Paths into nested session data.

A path is a tuple of string segments, e.g. ``('user', 'id')``. Callers may
also write it as a single dotted string (``'user.id'``), which
:func:`split` turns into segments.

The helpers here never mutate the mapping they are given. Writes return a new
top-level mapping that shares every untouched branch with the original, so
the caller can hand the result back to the store as a unit.
"""

from typing import Any, Dict, Iterable, Mapping, Tuple

Path = Tuple[str, ...]

SEPARATOR = '.'


def split(key: str) -> Path:
    """Split a dotted key into path segments."""
    return tuple(key.split(SEPARATOR))


def join(*parts: Iterable[str]) -> Path:
    """Concatenate several paths (or path prefixes) into one."""
    return tuple(segment for part in parts for segment in part)


def lookup(data: Mapping[str, Any], path: Path, default: Any = None) -> Any:
    """
    Get the value at ``path``.

    Parameters
    ----------
    data : Mapping
        Nested session data.
    path : tuple
        Segments to follow. An empty path yields ``data`` itself.
    default : Any
        Returned if a segment is missing, holds ``None``, or if descent runs
        into something that is not a mapping.

    Returns
    -------
    Any

    """
    value: Any = data
    for segment in path:
        if not isinstance(value, Mapping) or value.get(segment) is None:
            return default
        value = value[segment]
    return value


def upsert(data: Mapping[str, Any], path: Path, value: Any) -> Dict[str, Any]:
    """
    Put ``value`` at ``path``, creating intermediate mappings as needed.

    Sibling keys at every level are preserved. An intermediate that is not a
    mapping is replaced by one.

    Raises
    ------
    ValueError
        If ``path`` is empty.

    """
    if not path:
        raise ValueError('Cannot set a value at an empty path')
    head, rest = path[0], path[1:]
    updated = dict(data)
    if rest:
        child = data.get(head)
        if not isinstance(child, Mapping):
            child = {}
        updated[head] = upsert(child, rest, value)
    else:
        updated[head] = value
    return updated


def discard(data: Mapping[str, Any], path: Path) -> Mapping[str, Any]:
    """
    Remove the deepest-named key of ``path``.

    If any intermediate segment is missing or is not a mapping, ``data`` is
    returned as-is.
    """
    if not path:
        return data
    head, rest = path[0], path[1:]
    if head not in data:
        return data
    if not rest:
        updated = dict(data)
        del updated[head]
        return updated
    child = data[head]
    if not isinstance(child, Mapping):
        return data
    pruned = discard(child, rest)
    if pruned is child:
        return data
    updated = dict(data)
    updated[head] = pruned
    return updated


def merge_missing(existing: Mapping[str, Any],
                  values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Add the keys of ``values`` that ``existing`` lacks.

    Keys already present in ``existing`` win; their values are never
    overwritten by ``values``.
    """
    merged = dict(existing)
    for key, value in values.items():
        merged.setdefault(key, value)
    return merged
