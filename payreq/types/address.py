"""
payreq.types.address — address normalization.

Addresses are opaque, non-empty byte strings. Callers may hand them over as
raw bytes or as hex text with or without a `0x` prefix; everything inside the
contract works on `bytes`. The canonical text form (used in storage keys,
events on disk and logs) is `0x` + lowercase hex.
"""

from __future__ import annotations

from typing import Union

from ..errors import BadArgument

Address = bytes
AddressLike = Union[str, bytes, bytearray, memoryview]


def to_address(v: AddressLike, *, arg: str = "address") -> Address:
    """Normalize `v` to address bytes, rejecting empty or malformed input."""
    if isinstance(v, (bytes, bytearray, memoryview)):
        b = bytes(v)
    elif isinstance(v, str):
        s = v.strip()
        if s.startswith(("0x", "0X")):
            s = s[2:]
        try:
            b = bytes.fromhex(s)
        except ValueError as e:
            raise BadArgument(f"invalid hex address: {v!r}", arg=arg) from e
    else:
        raise BadArgument(f"address must be bytes or hex text, got {type(v).__name__}", arg=arg)
    if not b:
        raise BadArgument("address must not be empty", arg=arg)
    return b


def address_hex(a: Address) -> str:
    return "0x" + bytes(a).hex()


def short(a: Address) -> str:
    """Abbreviated form for log lines: 0xabcd…ef01."""
    h = bytes(a).hex()
    return "0x" + (h if len(h) <= 10 else f"{h[:4]}…{h[-4:]}")


__all__ = ["Address", "AddressLike", "to_address", "address_hex", "short"]
