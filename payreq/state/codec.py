"""
payreq.state.codec — storage keys and typed value encodings.

Key namespace
-------------
    Balance:<0xaddr>                   → u64
    Allowance:<0xowner>:<0xspender>    → u64
    PaymentRequest:<id>                → request record (canonical CBOR map)
    Name, Symbol                       → UTF-8 string
    TotalSupply, ServiceFee            → u64
    Decimals                           → u32
    Owner                              → address bytes

Integers are fixed-width big-endian (8 bytes for u64, 4 for u32). Absent
values decode to zero / empty / the absent request. A value of the wrong
width is corrupt state and raises StoreError.
"""

from __future__ import annotations

from typing import Optional

import cbor2

from ..errors import StoreError
from ..types.address import Address, address_hex
from ..types.request import PaymentRequest

# ---- keys ----

NAME = "Name"
SYMBOL = "Symbol"
TOTAL_SUPPLY = "TotalSupply"
SERVICE_FEE = "ServiceFee"
DECIMALS = "Decimals"
OWNER = "Owner"

BALANCE_PREFIX = "Balance:"
ALLOWANCE_PREFIX = "Allowance:"
REQUEST_PREFIX = "PaymentRequest:"


def balance_key(addr: Address) -> str:
    return BALANCE_PREFIX + address_hex(addr)


def allowance_key(owner: Address, spender: Address) -> str:
    return f"{ALLOWANCE_PREFIX}{address_hex(owner)}:{address_hex(spender)}"


def request_key(request_id: int) -> str:
    return f"{REQUEST_PREFIX}{request_id}"


# ---- integers ----


def _dec_int(raw: Optional[bytes], width: int, key: str) -> int:
    if raw is None:
        return 0
    if len(raw) != width:
        raise StoreError(f"corrupt u{width * 8} value ({len(raw)} bytes)", key=key)
    return int.from_bytes(raw, "big")


def enc_u64(v: int) -> bytes:
    return int(v).to_bytes(8, "big")


def dec_u64(raw: Optional[bytes], key: str = "?") -> int:
    return _dec_int(raw, 8, key)


def enc_u32(v: int) -> bytes:
    return int(v).to_bytes(4, "big")


def dec_u32(raw: Optional[bytes], key: str = "?") -> int:
    return _dec_int(raw, 4, key)


# ---- strings / addresses ----


def enc_str(s: str) -> bytes:
    return s.encode("utf-8")


def dec_str(raw: Optional[bytes], key: str = "?") -> str:
    if raw is None:
        return ""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise StoreError(f"corrupt string value: {e}", key=key) from e


def enc_address(a: Address) -> bytes:
    return bytes(a)


def dec_address(raw: Optional[bytes]) -> Address:
    return b"" if raw is None else bytes(raw)


# ---- request records ----


def enc_request(req: PaymentRequest) -> bytes:
    return cbor2.dumps(req.to_record(), canonical=True)


def dec_request(raw: Optional[bytes], key: str = "?") -> PaymentRequest:
    if raw is None:
        return PaymentRequest.absent()
    try:
        return PaymentRequest.from_record(cbor2.loads(raw))
    except (cbor2.CBORDecodeError, KeyError, TypeError, ValueError) as e:
        raise StoreError(f"corrupt payment request record: {e}", key=key) from e


__all__ = [
    "NAME",
    "SYMBOL",
    "TOTAL_SUPPLY",
    "SERVICE_FEE",
    "DECIMALS",
    "OWNER",
    "BALANCE_PREFIX",
    "ALLOWANCE_PREFIX",
    "REQUEST_PREFIX",
    "balance_key",
    "allowance_key",
    "request_key",
    "enc_u64",
    "dec_u64",
    "enc_u32",
    "dec_u32",
    "enc_str",
    "dec_str",
    "enc_address",
    "dec_address",
    "enc_request",
    "dec_request",
]
