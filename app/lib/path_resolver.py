# backend/app/lib/path_resolver.py
from typing import Any, Mapping, Optional


def resolve_path(record: Any, path: Optional[str]) -> Any:
    """
    Resolves a dotted key path (e.g. "data.positions.NRML") against a nested record.

    - An empty path returns the record itself (the response *is* the collection).
    - Any missing or null intermediate short-circuits to None instead of raising.
    - Only plain key traversal: no list indexes, no wildcards.
    """
    if not path or not path.strip():
        return record

    current = record
    for key in path.split("."):
        if current is None or not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current
