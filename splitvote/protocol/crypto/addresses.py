import bech32 # type: ignore
from functools import lru_cache
from .hash import sha256
from ..config.params import CURRENT_NETWORK
from ..types.common import InvalidAddress
from typing import Tuple, Optional

ADDRESS_LENGTH = 20


def address_from_bytes(h20: bytes, prefix: Optional[str] = None) -> str:
    """Encodes a 20-byte account id as a Bech32 address."""
    if len(h20) != ADDRESS_LENGTH:
        raise ValueError(f"Account id must be {ADDRESS_LENGTH} bytes, got {len(h20)}")

    # Convert to 5-bit words
    five_bit_r = bech32.convertbits(h20, 8, 5)
    if five_bit_r is None:
        raise ValueError("Error converting to bech32 words")

    return bech32.bech32_encode(prefix or CURRENT_NETWORK.bech32_prefix_acc, five_bit_r)


def address_from_seed(seed: str, prefix: Optional[str] = None) -> str:
    """Deterministic address for a label (devnet accounts, fixtures)."""
    return address_from_bytes(sha256(seed.encode("utf-8"))[:ADDRESS_LENGTH], prefix)


def zero_address(prefix: Optional[str] = None) -> str:
    """The no-delegate / mint / burn sentinel."""
    return address_from_bytes(b'\x00' * ADDRESS_LENGTH, prefix)


@lru_cache(maxsize=65536)
def decode_address(addr: str) -> Tuple[str, bytes]:
    """Decodes Bech32 address to (prefix, h20_bytes)."""
    hrp, data = bech32.bech32_decode(addr)
    if hrp is None or data is None:
        raise InvalidAddress(addr)

    decoded = bech32.convertbits(data, 5, 8, False)
    if decoded is None or len(decoded) != ADDRESS_LENGTH:
        raise InvalidAddress(addr)

    return hrp, bytes(decoded)


@lru_cache(maxsize=65536)
def canonical_address(addr: str, prefix: Optional[str] = None) -> str:
    """
    Re-encodes `addr` as lowercase Bech32 under `prefix`.

    Accounts and delegatees are keyed by this string: one payload, one key.
    A foreign prefix raises InvalidAddress.
    """
    expected = prefix or CURRENT_NETWORK.bech32_prefix_acc
    hrp, h20 = decode_address(addr)
    if hrp != expected:
        raise InvalidAddress(addr)
    return address_from_bytes(h20, expected)


def address_sort_key(addr: str) -> bytes:
    """
    Ordering key for delegatees.

    Bech32 characters are not in value order, so addresses are compared by
    their decoded payload. The zero address sorts first.
    """
    return decode_address(addr)[1]


def is_zero_address(addr: str) -> bool:
    try:
        return address_sort_key(addr) == b'\x00' * ADDRESS_LENGTH
    except InvalidAddress:
        return False


def is_valid_address(addr: str, expected_prefix: Optional[str] = None) -> bool:
    try:
        hrp, _ = decode_address(addr)
        if expected_prefix and hrp != expected_prefix:
            return False
        return True
    except InvalidAddress:
        return False
