"""Schema and protocol fingerprints.

A digest is ``<tag>:<hash>`` where the hash is the SHA-256 of the compact JSON
of the digested object (RFC 8785 for models, fixed field order for protocols),
base64 encoded with ``+``, ``/`` and ``=`` stripped and truncated to
``DIGEST_LENGTH`` characters. Mapping keys are sorted at every nesting level
first, so two schemas that differ only in field order share a digest.
"""

import base64
import hashlib
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .canonicaljson import canonicalize, compact_dumps
from .errors import CanonicalizationError

MODEL_PREFIX = "model:"
PROTOCOL_PREFIX = "proto:"
DIGEST_LENGTH = 32

_STRIP = str.maketrans("", "", "+/=")


@dataclass(frozen=True)
class ParsedDigest:
    kind: str  # "proto" | "model" | "unknown"
    hash: str


def _canonical_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        try:
            keys = sorted(value)
        except TypeError as e:
            raise CanonicalizationError(f"Schema keys must be strings: {e}") from e
        return {key: _canonical_value(value[key]) for key in keys}
    if isinstance(value, (list, tuple)):
        return [_canonical_value(item) for item in value]
    return value


def canonicalize_schema(schema: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *schema* with mapping keys sorted at every level.

    Mappings nested inside sequences are sorted too; scalars pass through.

    Raises:
        CanonicalizationError: If *schema* is not a mapping.
    """
    if not isinstance(schema, Mapping):
        raise CanonicalizationError(
            f"Schema must be a mapping, got {type(schema).__name__}"
        )
    return _canonical_value(schema)


def _hash(data: bytes, length: int | None) -> str:
    raw = hashlib.sha256(data).digest()
    encoded = base64.b64encode(raw).decode("ascii").translate(_STRIP)
    return encoded if length is None else encoded[:length]


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _canonical_model(model: Any) -> dict[str, Any]:
    return {
        "name": _field(model, "name"),
        "schema": canonicalize_schema(_field(model, "schema")),
    }


def digest_schema(schema: Mapping[str, Any], length: int | None = DIGEST_LENGTH) -> str:
    """Fingerprint a bare schema that has no model name attached.

    The hash is encoded like every other digest here, with ``+``, ``/`` and
    ``=`` stripped before truncation. Schema digests from tools that truncate
    the raw base64 without stripping will therefore not match.
    """
    return MODEL_PREFIX + _hash(canonicalize(canonicalize_schema(schema)), length)


def digest_model(model: Any, length: int | None = DIGEST_LENGTH) -> str:
    """Fingerprint a model definition (``name`` plus ``schema``).

    *model* may be a ``ModelDefinition`` or its wire mapping.
    """
    return MODEL_PREFIX + _hash(canonicalize(_canonical_model(model)), length)


def sort_models(models: Any) -> list:
    """Order models by the UTF-8 bytes of their names.

    Duplicate names are not merged; they are ordered by their own digest so
    the result does not depend on input order.
    """
    return sorted(
        models,
        key=lambda m: (str(_field(m, "name")).encode("utf-8"), digest_model(m, None)),
    )


def digest_manifest(manifest: Any, length: int | None = DIGEST_LENGTH) -> str:
    """Fingerprint a protocol from its name, version and sorted models.

    Unlike model digests, the outer object keeps the field order
    ``name, version, models`` rather than JCS order, so ``proto:`` values
    match those published by existing Fetch.ai agents. Handlers and
    description do not contribute to the digest.

    Raises:
        CanonicalizationError: If a schema holds a non-JSON value.
    """
    canonical = {
        "name": _field(manifest, "name"),
        "version": _field(manifest, "version"),
        "models": [_canonical_model(m) for m in sort_models(_field(manifest, "models"))],
    }
    try:
        data = compact_dumps(canonical)
    except (TypeError, ValueError) as e:
        raise CanonicalizationError(f"Canonicalization failed: {e}") from e
    return PROTOCOL_PREFIX + _hash(data, length)


def parse_digest(digest: str) -> ParsedDigest:
    if digest.startswith(PROTOCOL_PREFIX):
        return ParsedDigest("proto", digest[len(PROTOCOL_PREFIX):])
    if digest.startswith(MODEL_PREFIX):
        return ParsedDigest("model", digest[len(MODEL_PREFIX):])
    return ParsedDigest("unknown", digest)
