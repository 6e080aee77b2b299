"""Bech32 address helpers for Fetch.ai wallets, validators and agents."""

import re

from bech32 import bech32_decode, bech32_encode, convertbits

from .errors import AddressError

FETCH_PREFIX = "fetch"
AGENT_PREFIX = "agent"
VALIDATOR_PREFIX = "fetchvaloper"
VALIDATOR_CONSENSUS_PREFIX = "fetchvalcons"

ACCOUNT_BYTES = 20
_AGENT_ADDRESS_RE = re.compile(r"^agent1[a-z0-9]{38,}$")


def encode_bech32(prefix: str, data: bytes) -> str:
    """Encode raw bytes as a bech32 string with human-readable *prefix*."""
    words = convertbits(data, 8, 5, True)
    if words is None:
        raise AddressError("Cannot convert data to 5-bit words")
    return bech32_encode(prefix, words)


def decode_bech32(address: str) -> tuple[str, bytes]:
    """Decode a bech32 string into ``(prefix, data)``.

    Raises:
        AddressError: On bad checksum, mixed case or invalid characters.
    """
    prefix, words = bech32_decode(address)
    if prefix is None or words is None:
        raise AddressError(f"Invalid bech32 address: {address!r}")
    data = convertbits(words, 5, 8, False)
    if data is None:
        raise AddressError(f"Invalid bech32 payload padding: {address!r}")
    return prefix, bytes(data)


def _has_prefix(address: str, prefix: str, size: int | None = ACCOUNT_BYTES) -> bool:
    try:
        decoded_prefix, data = decode_bech32(address)
    except AddressError:
        return False
    if decoded_prefix != prefix:
        return False
    return size is None or len(data) == size


def validate_fetch_address(address: str) -> bool:
    """True for a checksummed ``fetch1...`` account address."""
    if not address.startswith(FETCH_PREFIX + "1"):
        return False
    return _has_prefix(address, FETCH_PREFIX)


def validate_validator_address(address: str) -> bool:
    """True for a checksummed ``fetchvaloper1...`` operator address."""
    if not address.startswith(VALIDATOR_PREFIX + "1"):
        return False
    return _has_prefix(address, VALIDATOR_PREFIX)


def validate_agent_address(address: str) -> bool:
    """True for an ``agent1...`` identifier.

    Agent identifiers are opaque to the envelope protocol, so only the
    shape is checked, not a bech32 checksum.
    """
    return bool(_AGENT_ADDRESS_RE.match(address))


def wallet_to_validator(wallet_address: str) -> str:
    _, data = decode_bech32(wallet_address)
    return encode_bech32(VALIDATOR_PREFIX, data)


def validator_to_wallet(validator_address: str) -> str:
    _, data = decode_bech32(validator_address)
    return encode_bech32(FETCH_PREFIX, data)


def agent_address(public_key: bytes) -> str:
    """Bech32 ``agent1...`` address for a raw public key."""
    return encode_bech32(AGENT_PREFIX, public_key)


def get_address_type(address: str) -> str:
    """Classify by prefix: ``wallet``, ``agent``, ``validator`` or ``unknown``."""
    if address.startswith(FETCH_PREFIX + "1"):
        return "wallet"
    if address.startswith(AGENT_PREFIX + "1"):
        return "agent"
    if address.startswith(VALIDATOR_PREFIX + "1"):
        return "validator"
    return "unknown"


def is_same_address(addr1: str, addr2: str) -> bool:
    """True when both addresses carry the same bytes, whatever their prefix."""
    try:
        _, data1 = decode_bech32(addr1)
        _, data2 = decode_bech32(addr2)
    except AddressError:
        return False
    return data1 == data2


def shorten_address(address: str, prefix_length: int = 10, suffix_length: int = 6) -> str:
    """Abbreviate an address for display as ``head...tail``."""
    if len(address) <= prefix_length + suffix_length + 3:
        return address
    return f"{address[:prefix_length]}...{address[-suffix_length:]}"


def parse_address(text: str) -> dict | None:
    """Normalize user input into ``{"address", "type"}`` or ``None``."""
    trimmed = text.strip().lower()

    if trimmed.startswith(FETCH_PREFIX + "1") and validate_fetch_address(trimmed):
        return {"address": trimmed, "type": "wallet"}
    if trimmed.startswith(AGENT_PREFIX + "1") and validate_agent_address(trimmed):
        return {"address": trimmed, "type": "agent"}
    if trimmed.startswith(VALIDATOR_PREFIX + "1") and validate_validator_address(trimmed):
        return {"address": trimmed, "type": "validator"}
    return None
