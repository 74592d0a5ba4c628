"""
Hashing Module - Snapshot Fingerprints

Canonical JSON serialization and SHA256 hashing for analytics snapshots.
Recomputing a snapshot over the same transaction collection must produce
the same fingerprint, which is how refreshes detect "nothing changed".

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def canonical_json_dumps(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Ensures deterministic serialization for hashing:
    - Keys sorted alphabetically
    - No whitespace
    - Decimals rendered exactly (no float rounding), sets sorted

    Args:
        obj: Object to serialize (dict, list, or primitive)

    Returns:
        Canonical JSON string

    Example:
        >>> canonical_json_dumps({"pl": Decimal("2000.00"), "month": "2024-02"})
        '{"month":"2024-02","pl":"2000"}'
    """
    def default_handler(o):
        if isinstance(o, Decimal):
            normalized = o.normalize()
            # normalize() turns 2000 into 2E+3
            return format(normalized, 'f')
        elif isinstance(o, Enum):
            return o.value
        elif isinstance(o, (date, datetime)):
            return o.isoformat()
        elif isinstance(o, (set, frozenset)):
            return sorted(o)
        else:
            raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")

    return json.dumps(
        obj,
        sort_keys=True,
        separators=(',', ':'),
        default=default_handler,
        ensure_ascii=True
    )


def calculate_sha256(data: Any) -> str:
    """
    Calculate SHA256 hash of data.

    Args:
        data: Data to hash (will be serialized to canonical JSON)

    Returns:
        SHA256 hex digest prefixed with 'sha256:'
    """
    json_str = canonical_json_dumps(data)
    hash_obj = hashlib.sha256(json_str.encode('utf-8'))
    return f"sha256:{hash_obj.hexdigest()}"


def verify_hash(data: Any, expected_hash: str) -> bool:
    """True if data hashes to expected_hash (with 'sha256:' prefix)."""
    return calculate_sha256(data) == expected_hash
