"""fetchlink: signed envelopes and protocol manifests for Fetch.ai agents."""

from .client import AgentverseClient
from .identity import Identity
from .digest import digest_manifest, digest_model, digest_schema
from .manifest import (
    HandlerDefinition,
    ModelDefinition,
    ProtocolManifest,
    are_compatible,
    create_manifest,
    merge_manifests,
    validate_manifest,
)
from .envelope import (
    create_envelope,
    create_error,
    create_response,
    decode_payload,
    deserialize_envelope,
    encode_payload,
    serialize_envelope,
    sign_envelope,
    validate_envelope,
    verify_envelope,
)
from .types import ValidationResult
from .errors import (
    FetchLinkError,
    EnvelopeError,
    PayloadError,
    SignatureError,
    CanonicalizationError,
    IdentityError,
    AddressError,
    AmountError,
    AgentverseError,
)

__all__ = [
    "AgentverseClient",
    "Identity",
    "digest_manifest",
    "digest_model",
    "digest_schema",
    "HandlerDefinition",
    "ModelDefinition",
    "ProtocolManifest",
    "are_compatible",
    "create_manifest",
    "merge_manifests",
    "validate_manifest",
    "create_envelope",
    "create_error",
    "create_response",
    "decode_payload",
    "deserialize_envelope",
    "encode_payload",
    "serialize_envelope",
    "sign_envelope",
    "validate_envelope",
    "verify_envelope",
    "ValidationResult",
    "FetchLinkError",
    "EnvelopeError",
    "PayloadError",
    "SignatureError",
    "CanonicalizationError",
    "IdentityError",
    "AddressError",
    "AmountError",
    "AgentverseError",
]
