"""Conversion between FET and its base unit afet (1 FET = 10**18 afet).

Amounts in afet travel as decimal integer strings, matching the Cosmos SDK
coin format. Display amounts in FET are decimal strings with trailing zeros
removed.
"""

import re
from decimal import Context, Decimal, InvalidOperation, localcontext

from .errors import AmountError
from .types import Coin

FET_DECIMALS = 18
FET_DENOM = "afet"
FET_DISPLAY_DENOM = "FET"
ONE_FET_IN_AFET = 10**FET_DECIMALS
DEFAULT_GAS_PRICE = "5000000000"

# Bare integers above this are read as afet by parse_amount, anything else as FET.
_AFET_GUESS_THRESHOLD = 1_000_000
_INTEGER_RE = re.compile(r"^\d+$")
_CONTEXT = Context(prec=80)


def _to_int(amount: str | int) -> int:
    text = str(amount).strip()
    if not _INTEGER_RE.match(text):
        raise AmountError(f"Not a non-negative integer amount: {amount!r}")
    return int(text)


def fet_to_afet(fet: str | int | float | Decimal) -> str:
    """Convert FET to afet, truncating anything beyond 18 decimals."""
    text = str(fet).strip()
    if not text:
        return "0"
    with localcontext(_CONTEXT):
        try:
            value = Decimal(text)
        except InvalidOperation as e:
            raise AmountError(f"Invalid FET amount: {fet!r}") from e
        if not value.is_finite() or value < 0:
            raise AmountError(f"Invalid FET amount: {fet!r}")
        return str(int(value.scaleb(FET_DECIMALS)))


def afet_to_fet(afet: str | int) -> str:
    value = _to_int(afet) if afet != "" else 0
    with localcontext(_CONTEXT):
        text = format(Decimal(value).scaleb(-FET_DECIMALS), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_fet(afet: str | int, max_decimals: int = 6) -> str:
    """Human-readable amount such as ``"1.5 FET"``; extra decimals are cut."""
    whole, _, fraction = afet_to_fet(afet).partition(".")
    fraction = fraction[:max_decimals]
    if fraction:
        return f"{whole}.{fraction} {FET_DISPLAY_DENOM}"
    return f"{whole} {FET_DISPLAY_DENOM}"


def parse_amount(text: str) -> str:
    """Parse ``"1.5 FET"``, ``"1500 afet"`` or a bare number into afet.

    Bare decimals are FET. Bare integers are afet when larger than one
    million and FET otherwise.
    """
    trimmed = text.strip().lower()

    if trimmed.endswith(FET_DENOM):
        return str(_to_int(trimmed[: -len(FET_DENOM)]))
    if trimmed.endswith("fet"):
        return fet_to_afet(trimmed[:-3].strip())
    if "." in trimmed:
        return fet_to_afet(trimmed)
    if _to_int(trimmed) > _AFET_GUESS_THRESHOLD:
        return str(int(trimmed))
    return fet_to_afet(trimmed)


def add_afet(a: str, b: str) -> str:
    return str(_to_int(a) + _to_int(b))


def subtract_afet(a: str, b: str) -> str:
    result = _to_int(a) - _to_int(b)
    if result < 0:
        raise AmountError("Subtraction would result in negative amount")
    return str(result)


def multiply_afet(amount: str, factor: float) -> str:
    """Scale an afet amount; *factor* is applied with 6 decimals of precision."""
    micro = int(Decimal(str(factor)) * 1_000_000)
    return str(_to_int(amount) * micro // 1_000_000)


def compare_afet(a: str, b: str) -> int:
    """-1, 0 or 1 as *a* is less than, equal to or greater than *b*."""
    x, y = _to_int(a), _to_int(b)
    return (x > y) - (x < y)


def is_valid_amount(amount: str) -> bool:
    return bool(amount) and bool(_INTEGER_RE.match(amount))


def create_coin(amount: str, denom: str = FET_DENOM) -> Coin:
    return {"amount": amount, "denom": denom}


def create_fet_coin(fet_amount: str | int | float) -> Coin:
    return create_coin(fet_to_afet(fet_amount), FET_DENOM)


def calculate_gas_fee(gas_limit: int, gas_price: str = DEFAULT_GAS_PRICE) -> Coin:
    return create_coin(str(int(gas_limit) * _to_int(gas_price)), FET_DENOM)
