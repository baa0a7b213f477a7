import re

from ..constants import UINT256_MAX, USDC_DECIMALS
from ..errors import InvalidAmountError

_DECIMAL_RE = re.compile(r"([0-9]*)(?:\.([0-9]+))?")


def parse_units(amount: str, decimals: int = USDC_DECIMALS) -> int:
    """
    Converts a decimal string ("0.25") to integer token units.

    Only plain non-negative decimals are accepted; more fractional digits than
    the token supports is an error, never a rounding.
    """
    if not isinstance(amount, str):
        raise InvalidAmountError(amount, "amount must be a decimal string")
    match = _DECIMAL_RE.fullmatch(amount.strip())
    # ".5" is accepted, a bare "" or "." is not
    if not match or not (match.group(1) or match.group(2)):
        raise InvalidAmountError(amount, "not a decimal number")

    whole, fraction = match.group(1) or "0", (match.group(2) or "").rstrip("0")
    if len(fraction) > decimals:
        raise InvalidAmountError(amount, f"more than {decimals} decimal places")

    value = int(whole) * 10**decimals + int(fraction.ljust(decimals, "0") or "0")
    if value > UINT256_MAX:
        raise InvalidAmountError(amount, "does not fit in uint256")
    return value


def format_units(value: int, decimals: int = USDC_DECIMALS) -> str:
    """Renders integer token units as a decimal string (100000 -> "0.1")."""
    whole, fraction = divmod(int(value), 10**decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0")
    if fraction_text:
        return f"{whole}.{fraction_text}"
    return str(whole)
