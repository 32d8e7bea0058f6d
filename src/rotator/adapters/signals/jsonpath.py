from __future__ import annotations

import re
from typing import Any

_SPLIT_RE = re.compile(r"[.\[\]]")


def extract(data: Any, path: str) -> Any:
    """Tiny JSONPath subset: `$`, `$.a.b`, `$.a[0].b`, `$.items[*].x`.

    `*` takes the first element of a list.
    """
    path = (path or "$").strip()
    if path == "$":
        return data
    parts = [p for p in _SPLIT_RE.split(re.sub(r"^\$\.?", "", path)) if p]

    current = data
    for part in parts:
        if current is None:
            raise ValueError(f"Cannot access {part} of null")
        if part == "*":
            if not isinstance(current, list) or not current:
                raise ValueError("Expected non-empty array for wildcard")
            current = current[0]
        elif part.lstrip("-").isdigit():
            if not isinstance(current, list):
                raise ValueError(f"Cannot index non-array with {part}")
            current = current[int(part)]
        else:
            if not isinstance(current, dict):
                raise ValueError(f"Cannot access property {part} of non-object")
            current = current.get(part)
    return current
