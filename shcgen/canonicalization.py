"""
SMART Health Card JSON Serialization

Three JSON forms are produced from the same closed document model
(dict, list, str, int, float, bool, None):

- serialize(): compact, insertion-ordered UTF-8, the form that is signed
- serialize_pretty(): two-space indented, the form written for humans
- canonicalize(): compact with lexicographically sorted keys, used for
  RFC 7638 JWK thumbprints
"""

import json
import math
from typing import Any, Dict, List, Union

from .errors import SerializationFailure


def serialize(obj: Any) -> bytes:
    """
    Serialize a document to compact JSON bytes.

    Rules:
    - Object keys kept in insertion order
    - No whitespace between tokens
    - UTF-8 encoding, no BOM, non-ASCII left unescaped
    - Arrays preserve order

    Raises:
        SerializationFailure: on circular structures or non-JSON values
    """
    return _dumps(_check_value(obj, set()), separators=(',', ':')).encode('utf-8')


def serialize_str(obj: Any) -> str:
    """Return compact JSON as string."""
    return serialize(obj).decode('utf-8')


def serialize_pretty(obj: Any) -> str:
    """Return two-space indented JSON."""
    return _dumps(_check_value(obj, set()), indent=2)


def canonicalize(obj: Any) -> bytes:
    """
    Convert an object to canonical JSON bytes.

    Object keys are sorted lexicographically (Unicode code point order),
    no whitespace, UTF-8.
    """
    canonical = _canonicalize_value(obj)
    return _dumps(canonical, separators=(',', ':')).encode('utf-8')


def _dumps(obj: Any, **kwargs) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False, allow_nan=False, **kwargs)
    except (TypeError, ValueError) as e:
        raise SerializationFailure(str(e)) from e


def _check_value(value: Any, active: set) -> Any:
    """Walk the closed document model, rejecting anything outside it."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    elif isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise SerializationFailure(f"Cannot serialize non-finite number: {value}")
        return value
    elif isinstance(value, (dict, list, tuple)):
        marker = id(value)
        if marker in active:
            raise SerializationFailure("Circular reference detected")
        active.add(marker)
        if isinstance(value, dict):
            for k, v in value.items():
                if not isinstance(k, str):
                    raise SerializationFailure(f"Object keys must be strings, got {type(k).__name__}")
                _check_value(v, active)
        else:
            for item in value:
                _check_value(item, active)
        active.discard(marker)
        return value
    else:
        raise SerializationFailure(f"Cannot serialize type: {type(value).__name__}")


def _canonicalize_value(value: Any) -> Any:
    """Recursively canonicalize a value."""
    if value is None:
        return None
    elif isinstance(value, bool):
        return value
    elif isinstance(value, (int, float)):
        return value
    elif isinstance(value, str):
        return value
    elif isinstance(value, dict):
        return _canonicalize_object(value)
    elif isinstance(value, (list, tuple)):
        return _canonicalize_array(value)
    else:
        raise SerializationFailure(f"Cannot canonicalize type: {type(value)}")


def _canonicalize_object(obj: Dict[str, Any]) -> Dict[str, Any]:
    sorted_keys = sorted(obj.keys())
    return {k: _canonicalize_value(obj[k]) for k in sorted_keys}


def _canonicalize_array(arr: Union[List, tuple]) -> List:
    return [_canonicalize_value(item) for item in arr]
