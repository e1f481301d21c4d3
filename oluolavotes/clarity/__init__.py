"""
Clarity wire format

Provides:
  - ClarityValue constructors, serialize / deserialize, to_python   (values.py)
  - c32check address encoding and principal helpers                (c32.py)
"""

from .c32 import (
    MAINNET_MULTI_SIG,
    MAINNET_SINGLE_SIG,
    TESTNET_MULTI_SIG,
    TESTNET_SINGLE_SIG,
    c32address,
    c32address_decode,
    c32decode,
    c32encode,
    is_valid_address,
    truncate_address,
)
from .values import (
    ClarityType,
    ClarityValue,
    ResponseErr,
    ResponseOk,
    bool_cv,
    buffer_cv,
    deserialize,
    err_cv,
    false_cv,
    int_cv,
    list_cv,
    none_cv,
    ok_cv,
    principal_cv,
    serialize,
    some_cv,
    string_ascii_cv,
    string_utf8_cv,
    to_hex,
    to_python,
    true_cv,
    tuple_cv,
    uint_cv,
    unwrap,
)

__all__ = [
    # c32
    "MAINNET_MULTI_SIG",
    "MAINNET_SINGLE_SIG",
    "TESTNET_MULTI_SIG",
    "TESTNET_SINGLE_SIG",
    "c32address",
    "c32address_decode",
    "c32decode",
    "c32encode",
    "is_valid_address",
    "truncate_address",
    # Values
    "ClarityType",
    "ClarityValue",
    "ResponseErr",
    "ResponseOk",
    "bool_cv",
    "buffer_cv",
    "deserialize",
    "err_cv",
    "false_cv",
    "int_cv",
    "list_cv",
    "none_cv",
    "ok_cv",
    "principal_cv",
    "serialize",
    "some_cv",
    "string_ascii_cv",
    "string_utf8_cv",
    "to_hex",
    "to_python",
    "true_cv",
    "tuple_cv",
    "uint_cv",
    "unwrap",
]
