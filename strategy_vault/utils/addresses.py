"""Wallet address normalization and validation."""

import re
from typing import Optional

from ..errors import InvalidInputError

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: Optional[str]) -> str:
    """
    Fold a wallet address for comparison and storage.

    Wallets display addresses with mixed-case checksums, so every ownership
    lookup must go through this function.

    Raises:
        InvalidInputError: If the address is missing or blank
    """
    if not isinstance(address, str) or not address.strip():
        raise InvalidInputError("Address is required", field="address", value=address)
    return address.strip().casefold()


def addresses_equal(left: Optional[str], right: Optional[str]) -> bool:
    """Case-insensitive address comparison; blank addresses never match."""
    try:
        return normalize_address(left) == normalize_address(right)
    except InvalidInputError:
        return False


def validate_address(address: Optional[str]) -> str:
    """
    Check that ``address`` is ``0x`` plus 40 hex digits and fold it.

    Raises:
        InvalidInputError: If the address is missing or malformed
    """
    folded = normalize_address(address)
    if not _ADDRESS_RE.match(folded):
        raise InvalidInputError("Invalid address format", field="address", value=address)
    return folded
