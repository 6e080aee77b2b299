"""Machine-readable error categories for fetchlink failures."""


class FetchLinkError(Exception):
    """Base exception for all fetchlink errors."""


class EnvelopeError(FetchLinkError):
    """Envelope text could not be parsed into an envelope object."""


class PayloadError(FetchLinkError):
    """Payload could not be encoded to or decoded from its envelope form."""


class SignatureError(FetchLinkError):
    """Signature verification failed."""


class CanonicalizationError(FetchLinkError):
    """JSON canonicalization failed."""


class IdentityError(FetchLinkError):
    """Identity key loading or generation error."""


class AddressError(FetchLinkError):
    """Bech32 address could not be encoded or decoded."""


class AmountError(FetchLinkError):
    """Token amount is malformed or an operation would make it negative."""


class AgentverseError(FetchLinkError):
    """Agentverse or mailbox transport/API error."""
