"""Typed dictionaries and result types for fetchlink protocol objects."""

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class Envelope(TypedDict):
    version: int
    sender: str
    target: str
    session: str
    schemaDigest: str
    protocolDigest: NotRequired[str]
    payload: str
    expires: NotRequired[int]
    nonce: NotRequired[str]
    signature: NotRequired[str]


class ModelDict(TypedDict):
    name: str
    schema: dict[str, Any]
    description: NotRequired[str]


class HandlerDict(TypedDict):
    name: str
    messageType: str
    responseType: NotRequired[str]
    description: NotRequired[str]


class ManifestDict(TypedDict):
    name: str
    version: str
    digest: str
    description: NotRequired[str]
    models: list[ModelDict]
    handlers: list[HandlerDict]


class AgentEndpoint(TypedDict):
    url: str
    weight: int


class Coin(TypedDict):
    amount: str
    denom: str


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a structural check. ``valid`` is true iff ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors
