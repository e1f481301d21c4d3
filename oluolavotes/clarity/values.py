"""
Clarity Value Serialization

Binary encoding of Clarity values as exchanged with Stacks nodes: every
value starts with a one-byte type prefix followed by a type-specific
payload (fixed 16-byte integers, u32 length-prefixed strings/buffers/lists,
name-tagged tuple entries, nested values for optionals and responses).
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..exceptions import ClarityDecodeError, ClarityEncodeError, InvalidAddressError
from .c32 import c32address, c32address_decode, is_valid_contract_name, split_principal


class ClarityType(IntEnum):
    """Type prefix byte."""
    INT = 0x00
    UINT = 0x01
    BUFFER = 0x02
    BOOL_TRUE = 0x03
    BOOL_FALSE = 0x04
    PRINCIPAL_STANDARD = 0x05
    PRINCIPAL_CONTRACT = 0x06
    RESPONSE_OK = 0x07
    RESPONSE_ERR = 0x08
    OPTIONAL_NONE = 0x09
    OPTIONAL_SOME = 0x0A
    LIST = 0x0B
    TUPLE = 0x0C
    STRING_ASCII = 0x0D
    STRING_UTF8 = 0x0E


UINT_MAX = 2 ** 128
INT_MIN = -(2 ** 127)
INT_MAX = 2 ** 127
TUPLE_NAME_MAX_LENGTH = 128


@dataclass(frozen=True)
class ClarityValue:
    """
    A typed Clarity value.

    `value` holds:
        int / uint               -> int
        buffer                   -> bytes
        true / false / none      -> None (the type says it all)
        principals               -> address string (``ADDR`` or ``ADDR.name``)
        ok / err / some          -> inner ClarityValue
        list                     -> tuple of ClarityValue
        tuple                    -> dict name -> ClarityValue
        string-ascii / utf8      -> str
    """
    type_id: ClarityType
    value: Any = None

    def serialize(self) -> bytes:
        return serialize(self)

    def to_hex(self) -> str:
        return to_hex(self)

    def __repr__(self) -> str:
        return f"ClarityValue({self.type_id.name}, {self.value!r})"


@dataclass(frozen=True)
class ResponseOk:
    value: Any


@dataclass(frozen=True)
class ResponseErr:
    value: Any


# ══════════════════════════════════════════════════════════════════════
#  CONSTRUCTORS
# ══════════════════════════════════════════════════════════════════════

def uint_cv(value: int) -> ClarityValue:
    value = int(value)
    if not 0 <= value < UINT_MAX:
        raise ClarityEncodeError(f"uint out of range: {value}")
    return ClarityValue(ClarityType.UINT, value)


def int_cv(value: int) -> ClarityValue:
    value = int(value)
    if not INT_MIN <= value < INT_MAX:
        raise ClarityEncodeError(f"int out of range: {value}")
    return ClarityValue(ClarityType.INT, value)


def true_cv() -> ClarityValue:
    return ClarityValue(ClarityType.BOOL_TRUE)


def false_cv() -> ClarityValue:
    return ClarityValue(ClarityType.BOOL_FALSE)


def bool_cv(value: bool) -> ClarityValue:
    return true_cv() if value else false_cv()


def buffer_cv(data: bytes) -> ClarityValue:
    return ClarityValue(ClarityType.BUFFER, bytes(data))


def string_ascii_cv(text: str) -> ClarityValue:
    try:
        text.encode("ascii")
    except UnicodeEncodeError as e:
        raise ClarityEncodeError(f"string-ascii contains non-ASCII characters: {e}") from e
    return ClarityValue(ClarityType.STRING_ASCII, text)


def string_utf8_cv(text: str) -> ClarityValue:
    return ClarityValue(ClarityType.STRING_UTF8, str(text))


def principal_cv(principal: str) -> ClarityValue:
    """Standard (``SP…``) or contract (``SP….name``) principal."""
    try:
        address, contract_name = split_principal(principal)
        c32address_decode(address)
    except InvalidAddressError as e:
        raise ClarityEncodeError(f"Invalid principal {principal!r}: {e}") from e
    if contract_name:
        return ClarityValue(ClarityType.PRINCIPAL_CONTRACT, principal)
    return ClarityValue(ClarityType.PRINCIPAL_STANDARD, principal)


def none_cv() -> ClarityValue:
    return ClarityValue(ClarityType.OPTIONAL_NONE)


def some_cv(inner: ClarityValue) -> ClarityValue:
    return ClarityValue(ClarityType.OPTIONAL_SOME, inner)


def ok_cv(inner: ClarityValue) -> ClarityValue:
    return ClarityValue(ClarityType.RESPONSE_OK, inner)


def err_cv(inner: ClarityValue) -> ClarityValue:
    return ClarityValue(ClarityType.RESPONSE_ERR, inner)


def list_cv(items: List[ClarityValue]) -> ClarityValue:
    return ClarityValue(ClarityType.LIST, tuple(items))


def tuple_cv(fields: Dict[str, ClarityValue]) -> ClarityValue:
    for name in fields:
        if not name or len(name) > TUPLE_NAME_MAX_LENGTH:
            raise ClarityEncodeError(f"Invalid tuple field name: {name!r}")
    return ClarityValue(ClarityType.TUPLE, dict(fields))


# ══════════════════════════════════════════════════════════════════════
#  SERIALIZATION
# ══════════════════════════════════════════════════════════════════════

def _u32(n: int) -> bytes:
    return n.to_bytes(4, "big")


def _serialize_standard_principal(address: str) -> bytes:
    version, hash160 = c32address_decode(address)
    return bytes([version]) + hash160


def serialize(cv: ClarityValue) -> bytes:
    """Serialize a ClarityValue to its consensus byte encoding."""
    t = cv.type_id
    prefix = bytes([t])

    if t == ClarityType.INT:
        return prefix + cv.value.to_bytes(16, "big", signed=True)
    if t == ClarityType.UINT:
        return prefix + cv.value.to_bytes(16, "big")
    if t == ClarityType.BUFFER:
        return prefix + _u32(len(cv.value)) + cv.value
    if t in (ClarityType.BOOL_TRUE, ClarityType.BOOL_FALSE, ClarityType.OPTIONAL_NONE):
        return prefix
    if t == ClarityType.PRINCIPAL_STANDARD:
        return prefix + _serialize_standard_principal(cv.value)
    if t == ClarityType.PRINCIPAL_CONTRACT:
        address, name = split_principal(cv.value)
        encoded_name = name.encode("ascii")
        return prefix + _serialize_standard_principal(address) + bytes([len(encoded_name)]) + encoded_name
    if t in (ClarityType.RESPONSE_OK, ClarityType.RESPONSE_ERR, ClarityType.OPTIONAL_SOME):
        return prefix + serialize(cv.value)
    if t == ClarityType.LIST:
        return prefix + _u32(len(cv.value)) + b"".join(serialize(item) for item in cv.value)
    if t == ClarityType.TUPLE:
        out = prefix + _u32(len(cv.value))
        # Field order on the wire is lexicographic by name
        for name in sorted(cv.value):
            encoded_name = name.encode("ascii")
            out += bytes([len(encoded_name)]) + encoded_name + serialize(cv.value[name])
        return out
    if t == ClarityType.STRING_ASCII:
        data = cv.value.encode("ascii")
        return prefix + _u32(len(data)) + data
    if t == ClarityType.STRING_UTF8:
        data = cv.value.encode("utf-8")
        return prefix + _u32(len(data)) + data

    raise ClarityEncodeError(f"Cannot serialize Clarity type: {t!r}")


def to_hex(cv: ClarityValue) -> str:
    return "0x" + serialize(cv).hex()


# ══════════════════════════════════════════════════════════════════════
#  DESERIALIZATION
# ══════════════════════════════════════════════════════════════════════

def deserialize(data: Union[bytes, str]) -> ClarityValue:
    """
    Decode a single serialized Clarity value.

    Args:
        data: Raw bytes or a hex string (with or without 0x)

    Raises:
        ClarityDecodeError: on malformed input or trailing bytes
    """
    if not isinstance(data, (bytes, bytearray, str)):
        raise ClarityDecodeError(f"Cannot decode Clarity value from {type(data).__name__}")
    if isinstance(data, str):
        hex_str = data[2:] if data.startswith("0x") else data
        try:
            data = bytes.fromhex(hex_str)
        except ValueError as e:
            raise ClarityDecodeError(f"Invalid hex: {e}") from e

    value, offset = _decode_at(data, 0)
    if offset != len(data):
        raise ClarityDecodeError(f"Trailing bytes after Clarity value: {len(data) - offset} bytes")
    return value


def _take(data: bytes, offset: int, length: int) -> Tuple[bytes, int]:
    end = offset + length
    if end > len(data):
        raise ClarityDecodeError(
            f"Unexpected end of data: need {length} bytes at offset {offset}, have {len(data) - offset}"
        )
    return data[offset:end], end


def _read_u32(data: bytes, offset: int) -> Tuple[int, int]:
    raw, offset = _take(data, offset, 4)
    return int.from_bytes(raw, "big"), offset


def _read_standard_principal(data: bytes, offset: int) -> Tuple[str, int]:
    raw, offset = _take(data, offset, 21)
    try:
        return c32address(raw[0], raw[1:]), offset
    except InvalidAddressError as e:
        raise ClarityDecodeError(f"Invalid principal: {e}") from e


def _decode_at(data: bytes, offset: int) -> Tuple[ClarityValue, int]:
    raw_prefix, offset = _take(data, offset, 1)
    try:
        t = ClarityType(raw_prefix[0])
    except ValueError:
        raise ClarityDecodeError(f"Unknown Clarity type prefix: 0x{raw_prefix[0]:02x}") from None

    if t == ClarityType.INT:
        raw, offset = _take(data, offset, 16)
        return ClarityValue(t, int.from_bytes(raw, "big", signed=True)), offset
    if t == ClarityType.UINT:
        raw, offset = _take(data, offset, 16)
        return ClarityValue(t, int.from_bytes(raw, "big")), offset
    if t == ClarityType.BUFFER:
        length, offset = _read_u32(data, offset)
        raw, offset = _take(data, offset, length)
        return ClarityValue(t, raw), offset
    if t in (ClarityType.BOOL_TRUE, ClarityType.BOOL_FALSE, ClarityType.OPTIONAL_NONE):
        return ClarityValue(t), offset
    if t == ClarityType.PRINCIPAL_STANDARD:
        address, offset = _read_standard_principal(data, offset)
        return ClarityValue(t, address), offset
    if t == ClarityType.PRINCIPAL_CONTRACT:
        address, offset = _read_standard_principal(data, offset)
        raw_len, offset = _take(data, offset, 1)
        raw_name, offset = _take(data, offset, raw_len[0])
        name = raw_name.decode("ascii", errors="replace")
        if not is_valid_contract_name(name):
            raise ClarityDecodeError(f"Invalid contract name: {name!r}")
        return ClarityValue(t, f"{address}.{name}"), offset
    if t in (ClarityType.RESPONSE_OK, ClarityType.RESPONSE_ERR, ClarityType.OPTIONAL_SOME):
        inner, offset = _decode_at(data, offset)
        return ClarityValue(t, inner), offset
    if t == ClarityType.LIST:
        count, offset = _read_u32(data, offset)
        items = []
        for _ in range(count):
            item, offset = _decode_at(data, offset)
            items.append(item)
        return ClarityValue(t, tuple(items)), offset
    if t == ClarityType.TUPLE:
        count, offset = _read_u32(data, offset)
        fields: Dict[str, ClarityValue] = {}
        for _ in range(count):
            raw_len, offset = _take(data, offset, 1)
            raw_name, offset = _take(data, offset, raw_len[0])
            field_value, offset = _decode_at(data, offset)
            fields[raw_name.decode("ascii", errors="replace")] = field_value
        return ClarityValue(t, fields), offset
    if t in (ClarityType.STRING_ASCII, ClarityType.STRING_UTF8):
        length, offset = _read_u32(data, offset)
        raw, offset = _take(data, offset, length)
        encoding = "ascii" if t == ClarityType.STRING_ASCII else "utf-8"
        try:
            return ClarityValue(t, raw.decode(encoding)), offset
        except UnicodeDecodeError as e:
            raise ClarityDecodeError(f"Invalid {encoding} string: {e}") from e

    raise ClarityDecodeError(f"Unhandled Clarity type: {t!r}")


# ══════════════════════════════════════════════════════════════════════
#  NATIVE CONVERSION
# ══════════════════════════════════════════════════════════════════════

def to_python(cv: Optional[ClarityValue]) -> Any:
    """
    Collapse a ClarityValue into plain Python values.

    Optionals disappear (none -> None, some -> inner value); responses keep
    their branch as ResponseOk / ResponseErr since callers need to know
    whether the contract reported success.
    """
    if cv is None:
        return None
    t = cv.type_id
    if t in (ClarityType.INT, ClarityType.UINT, ClarityType.BUFFER,
             ClarityType.STRING_ASCII, ClarityType.STRING_UTF8,
             ClarityType.PRINCIPAL_STANDARD, ClarityType.PRINCIPAL_CONTRACT):
        return cv.value
    if t == ClarityType.BOOL_TRUE:
        return True
    if t == ClarityType.BOOL_FALSE:
        return False
    if t == ClarityType.OPTIONAL_NONE:
        return None
    if t == ClarityType.OPTIONAL_SOME:
        return to_python(cv.value)
    if t == ClarityType.RESPONSE_OK:
        return ResponseOk(to_python(cv.value))
    if t == ClarityType.RESPONSE_ERR:
        return ResponseErr(to_python(cv.value))
    if t == ClarityType.LIST:
        return [to_python(item) for item in cv.value]
    if t == ClarityType.TUPLE:
        return {name: to_python(v) for name, v in cv.value.items()}
    raise ClarityDecodeError(f"Unhandled Clarity type: {t!r}")


def unwrap(cv: ClarityValue) -> Optional[ClarityValue]:
    """
    Strip one level of `(ok …)` or `(some …)`.

    Returns None for `none` and `(err …)`, which is how the contract says
    "not found" or "unsuccessful". Other values are returned unchanged.
    """
    if cv.type_id in (ClarityType.RESPONSE_OK, ClarityType.OPTIONAL_SOME):
        return cv.value
    if cv.type_id in (ClarityType.RESPONSE_ERR, ClarityType.OPTIONAL_NONE):
        return None
    return cv
