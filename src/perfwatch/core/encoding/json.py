"""JSON-shaped encoding of telemetry models and reports.

Python attribute names are snake_case; the wire format uses camelCase keys,
so ``total_queries`` becomes ``totalQueries``. Event variants gain a
``type`` key carrying their kind tag, and ``*_ms`` suffixes are dropped
(``timestamp_ms`` becomes ``timestamp``).
"""

import dataclasses
from collections.abc import Mapping
from typing import Any

_SUFFIXES = ("_ms", "_bytes")


def camel_case(name: str) -> str:
    """Convert a snake_case attribute name to its camelCase wire key."""
    for suffix in _SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
            break
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_jsonable(value: Any) -> Any:
    """Recursively convert models, mappings and sequences to JSON types.

    Args:
        value: A dataclass instance, mapping, sequence or scalar.

    Returns:
        Plain dicts, lists and scalars, suitable for ``json.dumps``.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        obj: dict[str, Any] = {}
        kind = getattr(type(value), "kind", None)
        if isinstance(kind, str):
            obj["type"] = kind
        for f in dataclasses.fields(value):
            obj[camel_case(f.name)] = to_jsonable(getattr(value, f.name))
        return obj
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
