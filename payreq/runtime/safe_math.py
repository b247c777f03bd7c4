"""
payreq.runtime.safe_math — fixed-width unsigned integer checks.

Balances, allowances, amounts, fees and times are u64; request ids and
decimals are u32. Arithmetic on them is checked: leaving the range is never
silently wrapped.

  - `check_u64(v, arg)` / `check_u32(v, arg)`: argument validation, raising
    BadArgument for wrong types (bool included) or out-of-range values.
  - `add_u64(a, b)`: checked addition, raising ArithmeticOverflow (a fatal
    abort of the whole invocation).
  - `sub_u64(a, b)`: checked subtraction; callers compare first, so an
    underflow here is a bug and raises ArithmeticOverflow too.
"""

from __future__ import annotations

from ..errors import ArithmeticOverflow, BadArgument

U64_MAX = (1 << 64) - 1
U32_MAX = (1 << 32) - 1


def _check(v: object, hi: int, bits: int, arg: str) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise BadArgument(f"{arg} must be an integer, got {type(v).__name__}", arg=arg)
    if v < 0 or v > hi:
        raise BadArgument(f"{arg} out of u{bits} range: {v}", arg=arg)
    return v


def check_u64(v: object, arg: str = "value") -> int:
    return _check(v, U64_MAX, 64, arg)


def check_u32(v: object, arg: str = "value") -> int:
    return _check(v, U32_MAX, 32, arg)


def is_u64(v: object) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= U64_MAX


def is_u32(v: object) -> bool:
    return isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= U32_MAX


def add_u64(a: int, b: int) -> int:
    r = a + b
    if r > U64_MAX:
        raise ArithmeticOverflow("u64 addition overflow", bits=64, data={"a": a, "b": b})
    return r


def sub_u64(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflow("u64 subtraction underflow", bits=64, data={"a": a, "b": b})
    return a - b


__all__ = [
    "U64_MAX",
    "U32_MAX",
    "check_u64",
    "check_u32",
    "is_u64",
    "is_u32",
    "add_u64",
    "sub_u64",
]
