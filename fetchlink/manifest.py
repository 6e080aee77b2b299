"""Protocol manifests: named message models plus handler bindings.

A ``ProtocolManifest`` computes its own digest when it is constructed, so a
manifest value never carries a stale digest. Deriving a changed copy with
``dataclasses.replace`` recomputes it as well.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any

from .digest import canonicalize_schema, digest_manifest, digest_model
from .types import HandlerDict, ManifestDict, ModelDict, ValidationResult

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelDefinition:
    """A named message schema.

    The schema is copied with its keys sorted on construction, so later
    changes to the caller's mapping never reach the model or its digest.
    """

    name: str
    schema: Mapping[str, Any]
    description: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "schema", canonicalize_schema(self.schema))

    @cached_property
    def digest(self) -> str:
        return digest_model(self)

    def to_dict(self) -> ModelDict:
        d: dict[str, Any] = {"name": self.name, "schema": canonicalize_schema(self.schema)}
        if self.description is not None:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModelDefinition":
        return cls(
            name=data["name"],
            schema=data["schema"],
            description=data.get("description"),
        )


@dataclass(frozen=True)
class HandlerDefinition:
    name: str
    message_type: str
    response_type: str | None = None
    description: str | None = None

    def to_dict(self) -> HandlerDict:
        d: dict[str, Any] = {"name": self.name, "messageType": self.message_type}
        if self.response_type is not None:
            d["responseType"] = self.response_type
        if self.description is not None:
            d["description"] = self.description
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HandlerDefinition":
        return cls(
            name=data["name"],
            message_type=data["messageType"],
            response_type=data.get("responseType"),
            description=data.get("description"),
        )


def _as_model(model: ModelDefinition | Mapping[str, Any]) -> ModelDefinition:
    if isinstance(model, ModelDefinition):
        return model
    return ModelDefinition.from_dict(model)


def _as_handler(handler: HandlerDefinition | Mapping[str, Any]) -> HandlerDefinition:
    if isinstance(handler, HandlerDefinition):
        return handler
    return HandlerDefinition.from_dict(handler)


@dataclass(frozen=True)
class ProtocolManifest:
    name: str
    version: str
    models: tuple[ModelDefinition, ...]
    handlers: tuple[HandlerDefinition, ...] = ()
    description: str | None = None
    digest: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "models", tuple(_as_model(m) for m in self.models))
        object.__setattr__(
            self, "handlers", tuple(_as_handler(h) for h in self.handlers or ())
        )
        object.__setattr__(self, "digest", digest_manifest(self))

    def to_dict(self) -> ManifestDict:
        d: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "digest": self.digest,
        }
        if self.description is not None:
            d["description"] = self.description
        d["models"] = [m.to_dict() for m in self.models]
        d["handlers"] = [h.to_dict() for h in self.handlers]
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProtocolManifest":
        """Rebuild a manifest from its wire form.

        The digest is always recomputed; a differing ``digest`` in *data* is
        logged and ignored.
        """
        manifest = cls(
            name=data["name"],
            version=data["version"],
            models=data["models"],
            handlers=data.get("handlers") or (),
            description=data.get("description"),
        )
        claimed = data.get("digest")
        if claimed and claimed != manifest.digest:
            _LOG.warning(
                "manifest %s v%s claims digest %s, computed %s",
                manifest.name, manifest.version, claimed, manifest.digest,
            )
        return manifest


def _as_manifest(manifest: ProtocolManifest | Mapping[str, Any]) -> ProtocolManifest:
    if isinstance(manifest, ProtocolManifest):
        return manifest
    return ProtocolManifest.from_dict(manifest)


def create_manifest(
    name: str,
    version: str,
    models: Iterable[ModelDefinition | Mapping[str, Any]],
    handlers: Iterable[HandlerDefinition | Mapping[str, Any]] = (),
    description: str | None = None,
) -> ProtocolManifest:
    """Build a manifest and compute its digest.

    Models and handlers may be given as definitions or as wire mappings
    (``{"name", "schema"}`` and ``{"name", "messageType", ...}``).
    """
    return ProtocolManifest(
        name=name,
        version=version,
        models=tuple(models),
        handlers=tuple(handlers),
        description=description,
    )


def validate_manifest(manifest: ProtocolManifest | Mapping[str, Any]) -> ValidationResult:
    """Check manifest structure, reporting every violation found.

    Accepts a ``ProtocolManifest`` or an untrusted wire mapping.
    """
    if isinstance(manifest, ProtocolManifest):
        data: Mapping[str, Any] = manifest.to_dict()
    elif isinstance(manifest, Mapping):
        data = manifest
    else:
        return ValidationResult(["Manifest must be an object"])

    errors: list[str] = []

    name = data.get("name")
    if not isinstance(name, str) or not name:
        errors.append("Missing or invalid protocol name")

    version = data.get("version")
    if not isinstance(version, str) or not version:
        errors.append("Missing or invalid protocol version")

    models = data.get("models")
    if not isinstance(models, (list, tuple)):
        errors.append("Missing or invalid models array")
    elif not models:
        errors.append("Protocol must define at least one model")
    else:
        for index, model in enumerate(models):
            if not isinstance(model, Mapping):
                errors.append(f"Model at index {index} is not an object")
                continue
            model_name = model.get("name")
            if not isinstance(model_name, str) or not model_name:
                errors.append(f"Model at index {index} missing name")
            if not isinstance(model.get("schema"), Mapping):
                errors.append(f"Model {model_name or index} missing or invalid schema")

    handlers = data.get("handlers")
    if handlers is not None:
        if not isinstance(handlers, (list, tuple)):
            errors.append("Invalid handlers array")
        else:
            for index, handler in enumerate(handlers):
                if not isinstance(handler, Mapping) or not handler.get("messageType"):
                    errors.append(f"Handler at index {index} missing messageType")

    return ValidationResult(errors)


def are_compatible(
    a: ProtocolManifest | Mapping[str, Any], b: ProtocolManifest | Mapping[str, Any]
) -> bool:
    """True if the two manifests share at least one identical model.

    Models are compared by digest rather than by name, so a shared name with
    a different schema does not count.
    """
    a, b = _as_manifest(a), _as_manifest(b)
    return not {m.digest for m in a.models}.isdisjoint(m.digest for m in b.models)


def merge_manifests(
    a: ProtocolManifest | Mapping[str, Any],
    b: ProtocolManifest | Mapping[str, Any],
    new_name: str,
    new_version: str,
) -> ProtocolManifest:
    """Combine two manifests into a new one.

    Models are deduplicated by digest with the first occurrence kept;
    handlers are concatenated as-is.
    """
    a, b = _as_manifest(a), _as_manifest(b)
    by_digest: dict[str, ModelDefinition] = {}
    for model in (*a.models, *b.models):
        by_digest.setdefault(model.digest, model)
    _LOG.debug(
        "merged %s and %s: %d of %d models kept",
        a.name, b.name, len(by_digest), len(a.models) + len(b.models),
    )

    return create_manifest(
        new_name,
        new_version,
        by_digest.values(),
        (*a.handlers, *b.handlers),
        f"Merged from {a.name} and {b.name}",
    )


def get_handler(
    manifest: ProtocolManifest | Mapping[str, Any], message_type: str
) -> HandlerDefinition | None:
    """First handler bound to *message_type*, in declaration order."""
    for handler in _as_manifest(manifest).handlers:
        if handler.message_type == message_type:
            return handler
    return None


def get_model(
    manifest: ProtocolManifest | Mapping[str, Any], name: str
) -> ModelDefinition | None:
    for model in _as_manifest(manifest).models:
        if model.name == name:
            return model
    return None


def get_model_names(manifest: ProtocolManifest | Mapping[str, Any]) -> list[str]:
    return [m.name for m in _as_manifest(manifest).models]


def create_simple_protocol(
    name: str,
    version: str,
    request_schema: Mapping[str, Any],
    response_schema: Mapping[str, Any],
) -> ProtocolManifest:
    """A one-handler request/response protocol."""
    return create_manifest(
        name,
        version,
        [
            ModelDefinition("Request", request_schema),
            ModelDefinition("Response", response_schema),
        ],
        [HandlerDefinition("handleRequest", "Request", "Response")],
        f"Simple request-response protocol for {name}",
    )


def format_protocol_info(manifest: ProtocolManifest) -> str:
    lines = [
        f"Protocol: {manifest.name} v{manifest.version}",
        f"Digest: {manifest.digest}",
        f"Models: {', '.join(get_model_names(manifest))}",
    ]
    if manifest.handlers:
        lines.append(f"Handlers: {', '.join(h.name for h in manifest.handlers)}")
    if manifest.description:
        lines.append(f"Description: {manifest.description}")
    return "\n".join(lines)
