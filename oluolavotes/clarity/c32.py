"""
c32check Address Encoding

Stacks principals are written as c32check strings: an `S` marker, one
c32 digit for the address version, then the c32 encoding of the 20-byte
hash160 followed by a 4-byte double-SHA256 checksum.
"""

import hashlib
import re
from typing import Tuple

from ..exceptions import InvalidAddressError


C32_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_C32_INDEX = {ch: i for i, ch in enumerate(C32_ALPHABET)}

# Address versions
MAINNET_SINGLE_SIG = 22   # SP
MAINNET_MULTI_SIG = 20    # SM
TESTNET_SINGLE_SIG = 26   # ST
TESTNET_MULTI_SIG = 21    # SN

ADDRESS_VERSIONS = (
    MAINNET_SINGLE_SIG,
    MAINNET_MULTI_SIG,
    TESTNET_SINGLE_SIG,
    TESTNET_MULTI_SIG,
)

HASH160_LENGTH = 20
CHECKSUM_LENGTH = 4

# Contract names: letter first, then letters, digits, '-' or '_', max 128 chars
CONTRACT_NAME_PATTERN = re.compile(r"^[a-zA-Z]([a-zA-Z0-9]|[-_])*$")
CONTRACT_NAME_MAX_LENGTH = 128


def c32_normalize(text: str) -> str:
    """Upper-case and map the look-alike characters O, I and L onto 0 and 1."""
    return text.upper().replace("O", "0").replace("L", "1").replace("I", "1")


def c32encode(data: bytes) -> str:
    """
    Encode bytes as a c32 string.

    Leading zero bytes are kept as one leading '0' digit each, the rest is
    the base-32 representation of the big-endian integer value.
    """
    value = int.from_bytes(data, "big")
    digits = []
    while value:
        value, rem = divmod(value, 32)
        digits.append(C32_ALPHABET[rem])
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    return "0" * leading_zeros + "".join(reversed(digits))


def c32decode(text: str) -> bytes:
    """Inverse of c32encode. Raises InvalidAddressError on characters outside the alphabet."""
    text = c32_normalize(text)
    value = 0
    for ch in text:
        if ch not in _C32_INDEX:
            raise InvalidAddressError(f"Invalid c32 character: {ch!r}")
        value = value * 32 + _C32_INDEX[ch]
    leading_zeros = len(text) - len(text.lstrip("0"))
    body = b""
    if value:
        body = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return b"\x00" * leading_zeros + body


def _checksum(version: int, payload: bytes) -> bytes:
    data = bytes([version]) + payload
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()[:CHECKSUM_LENGTH]


def c32check_encode(version: int, payload: bytes) -> str:
    if not 0 <= version < 32:
        raise InvalidAddressError(f"Address version out of range: {version}")
    return C32_ALPHABET[version] + c32encode(payload + _checksum(version, payload))


def c32check_decode(text: str) -> Tuple[int, bytes]:
    text = c32_normalize(text)
    if len(text) < 2:
        raise InvalidAddressError("c32check string too short")
    version_char = text[0]
    if version_char not in _C32_INDEX:
        raise InvalidAddressError(f"Invalid version character: {version_char!r}")
    version = _C32_INDEX[version_char]

    data = c32decode(text[1:])
    if len(data) < CHECKSUM_LENGTH:
        raise InvalidAddressError("c32check string too short")
    payload, checksum = data[:-CHECKSUM_LENGTH], data[-CHECKSUM_LENGTH:]
    if _checksum(version, payload) != checksum:
        raise InvalidAddressError("Address checksum mismatch")
    return version, payload


def c32address(version: int, hash160: bytes) -> str:
    """
    Build a Stacks address from a version byte and a hash160.

    Args:
        version: One of ADDRESS_VERSIONS
        hash160: 20-byte public key / script hash

    Returns:
        Address string such as ``SP2J6ZY48GV1EZ5V2V5RB9MP66SW86PYKKNRV9EJ7``
    """
    if isinstance(hash160, str):
        hash160 = bytes.fromhex(hash160)
    if len(hash160) != HASH160_LENGTH:
        raise InvalidAddressError(f"hash160 must be {HASH160_LENGTH} bytes, got {len(hash160)}")
    return "S" + c32check_encode(version, hash160)


def c32address_decode(address: str) -> Tuple[int, bytes]:
    """Split a Stacks address into (version, hash160)."""
    if not isinstance(address, str) or len(address) <= 5:
        raise InvalidAddressError(f"Invalid Stacks address: {address!r}")
    if address[0] != "S":
        raise InvalidAddressError(f"Stacks address must start with 'S': {address}")
    version, hash160 = c32check_decode(address[1:])
    if len(hash160) != HASH160_LENGTH:
        raise InvalidAddressError(f"Address payload must be {HASH160_LENGTH} bytes")
    return version, hash160


def split_principal(principal: str) -> Tuple[str, str]:
    """
    Split ``ADDRESS.contract-name`` into its parts. Standard principals
    return an empty contract name.
    """
    address, sep, contract_name = principal.partition(".")
    if sep and not is_valid_contract_name(contract_name):
        raise InvalidAddressError(f"Invalid contract name: {contract_name!r}")
    return address, contract_name


def is_valid_contract_name(name: str) -> bool:
    return bool(name) and len(name) <= CONTRACT_NAME_MAX_LENGTH and bool(CONTRACT_NAME_PATTERN.match(name))


def is_valid_address(address: str) -> bool:
    """Check a standard or contract principal without raising."""
    try:
        standard, _ = split_principal(address)
        c32address_decode(standard)
    except InvalidAddressError:
        return False
    return True


def truncate_address(address: str) -> str:
    """Short display form: first 8 and last 6 characters."""
    if not address:
        return ""
    return f"{address[:8]}...{address[-6:]}"
