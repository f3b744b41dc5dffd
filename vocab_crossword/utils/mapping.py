"""Helpers for building config dataclasses from loosely-typed mappings."""

from __future__ import annotations

import re
from dataclasses import fields
from typing import Any, Dict, Mapping, Type

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def dataclass_kwargs(cls: Type[Any], data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map snake_case or camelCase keys onto the fields of ``cls``.

    Unknown keys raise :class:`ValueError` so that typos in wire payloads
    surface instead of silently falling back to defaults.
    """

    known = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        name = snake_case(key)
        if name not in known:
            raise ValueError(f"Unknown {cls.__name__} option: {key!r}")
        kwargs[name] = value
    return kwargs
