"""Agent envelope construction, signing, verification and validation.

Envelopes are plain dicts carrying the wire field names (``schemaDigest``,
``protocolDigest`` ...). Optional fields are represented by absent keys, never
by ``None``. Signing and deriving responses always produce new dicts; the input
envelope is left untouched.
"""

import base64
import json
import logging
import secrets
import time
import uuid
from collections.abc import Mapping
from typing import Any

from .canonicaljson import compact_dumps
from .errors import EnvelopeError, PayloadError
from .identity import Identity
from .types import Envelope, ValidationResult

_LOG = logging.getLogger(__name__)

ENVELOPE_VERSION = 1
DEFAULT_EXPIRY = 300  # seconds
ERROR_SCHEMA_DIGEST = "model:error-v1"

# Signed fields, in signing order. protocolDigest is appended when present.
SIGNED_FIELDS = (
    "version",
    "sender",
    "target",
    "session",
    "schemaDigest",
    "payload",
    "expires",
    "nonce",
)
_REQUIRED_STRINGS = ("sender", "target", "session", "schemaDigest", "payload")
_OPTIONAL_STRINGS = ("protocolDigest", "nonce", "signature")


def create_session_id() -> str:
    return str(uuid.uuid4())


def create_nonce() -> str:
    """128 random bits as 32 hex characters."""
    return secrets.token_hex(16)


def calculate_expiry(ttl_seconds: int = DEFAULT_EXPIRY) -> int:
    return int(time.time()) + ttl_seconds


def is_expired(timestamp: int | float) -> bool:
    """True once the current time is strictly past *timestamp*.

    An envelope expiring at exactly the current second is still valid.
    """
    return int(time.time()) > timestamp


def encode_payload(payload: Any) -> str:
    """Encode a JSON value as base64 of its compact UTF-8 JSON text.

    Raises:
        PayloadError: If *payload* is not JSON-serializable.
    """
    try:
        raw = compact_dumps(payload)
    except (TypeError, ValueError) as e:
        raise PayloadError(f"Payload is not JSON-serializable: {e}") from e
    return base64.b64encode(raw).decode("ascii")


def decode_payload(encoded: str) -> Any:
    """Inverse of :func:`encode_payload`.

    Raises:
        PayloadError: If *encoded* is not base64 of UTF-8 JSON.
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
        return json.loads(raw.decode("utf-8"))
    except (TypeError, ValueError) as e:
        raise PayloadError(f"Payload decode failed: {e}") from e


def open_payload(envelope: Envelope) -> Any:
    """Decode the payload carried by *envelope*."""
    return decode_payload(envelope["payload"])


def build_signing_payload(envelope: Mapping[str, Any]) -> bytes:
    """Build the signing payload: compact JSON of the signed fields in order.

    Absent optional fields are left out rather than serialized as null.

    Raises:
        EnvelopeError: If a signed field holds a non-JSON value.
    """
    body = {name: envelope[name] for name in SIGNED_FIELDS if name in envelope}
    if "protocolDigest" in envelope:
        body["protocolDigest"] = envelope["protocolDigest"]
    try:
        return compact_dumps(body)
    except (TypeError, ValueError) as e:
        raise EnvelopeError(f"Cannot serialize envelope for signing: {e}") from e


def create_envelope(
    sender: str,
    target: str,
    payload: Any,
    schema_digest: str,
    *,
    session: str | None = None,
    protocol_digest: str | None = None,
    expiry_seconds: int | None = None,
) -> Envelope:
    """Build a new unsigned envelope.

    Args:
        sender: Sending agent address.
        target: Receiving agent address.
        payload: Any JSON-serializable value.
        schema_digest: Digest of the model describing *payload*.
        session: Dialogue id to continue; a fresh UUID4 if omitted.
        protocol_digest: Digest of the owning protocol manifest, if any.
        expiry_seconds: Lifetime from now; ``DEFAULT_EXPIRY`` if omitted.

    Returns:
        An envelope dict without a ``signature`` key.

    Raises:
        PayloadError: If *payload* is not JSON-serializable.
    """
    envelope: dict[str, Any] = {
        "version": ENVELOPE_VERSION,
        "sender": sender,
        "target": target,
        "session": session or create_session_id(),
        "schemaDigest": schema_digest,
    }
    if protocol_digest is not None:
        envelope["protocolDigest"] = protocol_digest
    envelope["payload"] = encode_payload(payload)
    envelope["expires"] = calculate_expiry(
        DEFAULT_EXPIRY if expiry_seconds is None else expiry_seconds
    )
    envelope["nonce"] = create_nonce()
    return envelope


def sign_envelope(envelope: Envelope, private_key: bytes | Identity) -> Envelope:
    """Return a signed copy of *envelope*.

    Args:
        envelope: Envelope to sign; any existing signature is replaced.
        private_key: Raw 32-byte ed25519 private key or an ``Identity``.
    """
    identity = (
        private_key
        if isinstance(private_key, Identity)
        else Identity.from_private_key(private_key)
    )
    sig = identity.sign(build_signing_payload(envelope))
    signed = {k: v for k, v in envelope.items() if k != "signature"}
    signed["signature"] = base64.b64encode(sig).decode("ascii")
    return signed


def verify_envelope(envelope: Envelope, public_key: bytes | Identity) -> bool:
    """Check the envelope signature against *public_key*.

    Never raises: a missing signature, malformed key or signature encoding,
    or a mismatch all yield ``False``.
    """
    if not isinstance(envelope, Mapping) or "signature" not in envelope:
        return False
    try:
        if isinstance(public_key, Identity):
            public_key = public_key.public_key_bytes
        sig = base64.b64decode(envelope["signature"], validate=True)
        Identity.verify(bytes(public_key), sig, build_signing_payload(envelope))
    except Exception as e:
        _LOG.debug("envelope session=%s failed verification: %s", envelope.get("session"), e)
        return False
    return True


def validate_envelope(envelope: Envelope) -> ValidationResult:
    """Check envelope structure and expiry, reporting every violation found."""
    if not isinstance(envelope, Mapping):
        return ValidationResult(["Envelope must be an object"])

    errors: list[str] = []

    version = envelope.get("version")
    if isinstance(version, bool) or version != ENVELOPE_VERSION:
        errors.append(f"Invalid version: expected {ENVELOPE_VERSION}, got {version}")

    for name in _REQUIRED_STRINGS:
        value = envelope.get(name)
        if not isinstance(value, str) or not value:
            errors.append(f"Missing or invalid {name}")

    for name in _OPTIONAL_STRINGS:
        if name in envelope and not isinstance(envelope[name], str):
            errors.append(f"Invalid {name}: must be a string")

    expires = envelope.get("expires")
    if expires is not None:
        if isinstance(expires, bool) or not isinstance(expires, (int, float)):
            errors.append("Invalid expires: must be a timestamp")
        elif is_expired(expires):
            errors.append("Message has expired")

    return ValidationResult(errors)


def create_response(
    original: Envelope,
    sender: str,
    payload: Any,
    schema_digest: str,
    *,
    expiry_seconds: int | None = None,
) -> Envelope:
    """Reply to *original* within its session and protocol."""
    return create_envelope(
        sender,
        original["sender"],
        payload,
        schema_digest,
        session=original["session"],
        protocol_digest=original.get("protocolDigest"),
        expiry_seconds=expiry_seconds,
    )


def create_error(original: Envelope, sender: str, code: str, message: str) -> Envelope:
    """Reply to *original* with an error payload under ``ERROR_SCHEMA_DIGEST``."""
    return create_response(
        original,
        sender,
        {"type": "error", "code": code, "message": message},
        ERROR_SCHEMA_DIGEST,
    )


def serialize_envelope(envelope: Envelope) -> str:
    try:
        return compact_dumps(dict(envelope)).decode("utf-8")
    except (TypeError, ValueError) as e:
        raise EnvelopeError(f"Envelope is not JSON-serializable: {e}") from e


def deserialize_envelope(data: str | bytes) -> Envelope:
    """Parse envelope JSON text. Structure is checked by validate_envelope.

    Raises:
        EnvelopeError: If *data* is not a JSON object.
    """
    try:
        envelope = json.loads(data)
    except ValueError as e:
        raise EnvelopeError(f"Envelope is not valid JSON: {e}") from e
    if not isinstance(envelope, dict):
        raise EnvelopeError("Envelope must be a JSON object")
    return envelope
