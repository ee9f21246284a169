"""
Payload copy contract.

Payloads are deep-copied through a JSON round trip when they enter the
cache. Only JSON-representable data survives:

- dict keys become strings; keys that JSON cannot represent are skipped
- tuples become lists
- datetime/date values become ISO-8601 strings, enums become their values
- pydantic models are dumped field by field under the same rules
- NaN and infinities become None
- values with no JSON form (functions, sets, arbitrary objects) and cyclic
  references are dropped from mappings and become None inside sequences
"""

import json
import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Set

from pydantic import BaseModel

_DROP = object()


def _convert(value: Any, path: Set[int]) -> Any:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, Enum):
        return _convert(value.value, path)
    if isinstance(value, (str, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return _convert(value.model_dump(), path)

    if isinstance(value, Mapping):
        if id(value) in path:
            return _DROP
        path.add(id(value))
        result = {}
        for key, item in value.items():
            if isinstance(key, Enum):
                key = key.value
            if not isinstance(key, (str, int, float, bool)) and key is not None:
                continue
            converted = _convert(item, path)
            if converted is not _DROP:
                result[key] = converted
        path.discard(id(value))
        return result

    if isinstance(value, (list, tuple)):
        if id(value) in path:
            return _DROP
        path.add(id(value))
        result = []
        for item in value:
            converted = _convert(item, path)
            result.append(None if converted is _DROP else converted)
        path.discard(id(value))
        return result

    return _DROP


def to_json_safe(value: Any) -> Optional[Any]:
    """
    Reduce a value to its JSON-representable part.

    Args:
        value: Arbitrary payload

    Returns:
        A structure json.dumps accepts, or None if nothing is representable
    """
    converted = _convert(value, set())
    return None if converted is _DROP else converted


def json_clone(value: Any) -> Any:
    """Deep-copy a payload through a JSON round trip."""
    return json.loads(json.dumps(to_json_safe(value), skipkeys=True))
