"""
Canonical serialization and stable hashing utilities
Ensures byte-identical payloads every time a contact is shared
"""

import json
import hashlib
import logging
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)


class CanonicalizationError(ValueError):
    """Raised when data cannot be canonicalized"""
    pass


def canonical_json(data: Union[Dict[str, Any], list, str, int, bool, None]) -> str:
    """
    Convert data to canonical JSON representation

    Rules:
    - Sort object keys
    - Use compact separators (no whitespace)
    - Keep list order untouched
    - Emit non-ASCII text as UTF-8 rather than escapes

    Args:
        data: Data to canonicalize

    Returns:
        Canonical JSON string
    """
    def _canonicalize(value):
        if isinstance(value, dict):
            for key in value:
                if not isinstance(key, str):
                    raise CanonicalizationError(f"Object keys must be strings, got {type(key)}")
            return {k: _canonicalize(v) for k, v in sorted(value.items())}
        elif isinstance(value, (list, tuple)):
            return [_canonicalize(item) for item in value]
        elif isinstance(value, (str, int, bool)) or value is None:
            return value
        else:
            raise CanonicalizationError(f"Unsupported type for canonicalization: {type(value)}")

    canonical_data = _canonicalize(data)
    return json.dumps(canonical_data, sort_keys=True, separators=(',', ':'), ensure_ascii=False)


def stable_hash(data: str) -> str:
    """
    Generate stable SHA-256 hash of canonical data

    Args:
        data: Canonical string data to hash

    Returns:
        Hexadecimal SHA-256 hash
    """
    if not isinstance(data, str):
        raise ValueError(f"Data must be string, got {type(data)}")

    return hashlib.sha256(data.encode('utf-8')).hexdigest()
