"""JSON serialization helpers used for hashing and signing.

``canonicalize`` delegates to the ``jcs`` library (a Python implementation of
RFC 8785) and is used wherever the output only has to be stable, such as
schema and protocol digests.

``compact_dumps`` keeps the caller's key order and is used wherever the field
order itself is part of the contract, such as the envelope signing payload and
the encoded payload blob.
"""

import json
from typing import Any

import jcs as _jcs

from .errors import CanonicalizationError


def canonicalize(obj: dict) -> bytes:
    """Canonicalize a JSON-serializable dict to UTF-8 bytes per RFC 8785.

    Args:
        obj: A JSON-serializable dictionary.

    Returns:
        Canonical JSON encoded as UTF-8 bytes.

    Raises:
        CanonicalizationError: If the input cannot be canonicalized.
    """
    if not isinstance(obj, dict):
        raise CanonicalizationError("Input must be a JSON object (dict)")
    try:
        return _jcs.canonicalize(obj)
    except Exception as e:
        raise CanonicalizationError(f"Canonicalization failed: {e}") from e


def compact_dumps(obj: Any) -> bytes:
    """Serialize *obj* without whitespace, preserving key insertion order.

    Non-ASCII characters are emitted as raw UTF-8 and NaN/Infinity are
    rejected, so the bytes match what a JavaScript ``JSON.stringify`` peer
    produces for the same strings and integers.

    Raises:
        TypeError, ValueError: If *obj* is not JSON-serializable.
    """
    return json.dumps(
        obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    ).encode("utf-8")
