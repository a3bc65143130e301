"""
Address and amount normalization used when comparing transaction fields.
"""
import re
from typing import Optional

from web3 import Web3

from .models import ChainFamily

_CANONICAL_AMOUNT = re.compile(r"0|[1-9][0-9]*")
_DIGITS_PER_CHUNK = 1000


def normalize_address(address: Optional[str], family: Optional[ChainFamily] = None) -> Optional[str]:
    """
    Render an address in the canonical form of its chain family.

    EVM addresses are converted to EIP-55 checksum case. Invalid EVM
    addresses and addresses of other families are returned unchanged.
    """
    if address is None:
        return None
    if family == ChainFamily.EVM and Web3.is_address(address):
        return Web3.to_checksum_address(address)
    return address


def addresses_equal(a: Optional[str], b: Optional[str], family: Optional[ChainFamily] = None) -> bool:
    return normalize_address(a, family) == normalize_address(b, family)


def is_canonical_amount(amount: Optional[str]) -> bool:
    return isinstance(amount, str) and _CANONICAL_AMOUNT.fullmatch(amount) is not None


def parse_amount(amount: Optional[str]) -> Optional[int]:
    """
    Parse a canonical decimal amount string of any length.

    Returns:
        The integer value, or None if the string is not canonical
        ("1000.0", "1e3", "01", "-1" and the like)
    """
    if not is_canonical_amount(amount):
        return None
    # int() refuses strings longer than sys.get_int_max_str_digits()
    value = 0
    for start in range(0, len(amount), _DIGITS_PER_CHUNK):
        chunk = amount[start:start + _DIGITS_PER_CHUNK]
        value = value * 10 ** len(chunk) + int(chunk)
    return value


def amounts_equal(a: Optional[str], b: Optional[str]) -> bool:
    """
    Two amounts are equal only if both are canonical and numerically equal.

    Canonical strings have no leading zeros, so numeric equality is string
    equality and no integer conversion is needed.
    """
    return is_canonical_amount(a) and is_canonical_amount(b) and a == b
