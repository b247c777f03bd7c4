"""
payreq.runtime.dispatcher — route a named call to the contract.

`dispatch(contract, ctx, method, args)` accepts snake_case names
(``create_request``) and PascalCase names (``CreateRequest``), with `args`
given positionally (list/tuple) or by name (mapping; camelCase keys are
accepted too). The outcome is folded into a `CallResult`:

  - return value False  → status "false" (business rejection, nothing changed)
  - Revert              → status "revert" with {code, message, data?}
  - other ContractError → status "error"
  - anything else       → status "success" with the return value

Unknown methods and argument lists that do not fit raise DispatchError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import ContractError, DispatchError, error_to_result_fields
from ..types.result import CallResult, CallStatus
from .context import ExecutionContext
from .contract import PaymentRequestContract


@dataclass(frozen=True)
class MethodSpec:
    attr: str
    params: Tuple[str, ...]
    mutating: bool


METHODS: Dict[str, MethodSpec] = {
    # token
    "get_balance": MethodSpec("get_balance", ("address",), False),
    "allowance": MethodSpec("allowance", ("owner", "spender"), False),
    "get_decimals": MethodSpec("get_decimals", (), False),
    "name": MethodSpec("name", (), False),
    "symbol": MethodSpec("symbol", (), False),
    "total_supply": MethodSpec("total_supply", (), False),
    "transfer_to": MethodSpec("transfer_to", ("to", "amount"), True),
    "transfer_from": MethodSpec("transfer_from", ("from", "to", "amount"), True),
    "approve": MethodSpec("approve", ("spender", "expected_current", "new_amount"), True),
    # access / fee
    "owner": MethodSpec("owner", (), False),
    "service_fee": MethodSpec("service_fee", (), False),
    "revise_service_fee": MethodSpec("revise_service_fee", ("new_fee",), True),
    # requests
    "create_request": MethodSpec(
        "create_request", ("id", "description", "recipient", "amount", "expiry"), True
    ),
    "get_payment_request": MethodSpec("get_payment_request", ("id",), False),
    "pay_request": MethodSpec("pay_request", ("id", "current_time"), True),
    "cancel_request": MethodSpec("cancel_request", ("id",), True),
}

# Parameter names used by the original public interface.
_PARAM_ALIASES = {
    "recipient_address": "recipient",
    "current_amount": "expected_current",
    "amount_new": "new_amount",
    "new_service_fee": "new_fee",
    "request_id": "id",
}

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake(name: str) -> str:
    """``CreateRequest`` → ``create_request``; snake_case passes through."""
    return _CAMEL_RE.sub(r"_\1", name.strip()).lower()


def resolve(method: str) -> MethodSpec:
    spec = METHODS.get(to_snake(method))
    if spec is None:
        raise DispatchError(f"unknown method {method!r}", method=method)
    return spec


def _bind(spec: MethodSpec, method: str, args: Union[Sequence[Any], Mapping[str, Any], None]) -> List[Any]:
    if args is None:
        args = ()
    if isinstance(args, Mapping):
        named: Dict[str, Any] = {}
        for k, v in args.items():
            key = to_snake(k)
            named[_PARAM_ALIASES.get(key, key)] = v
        unknown = sorted(set(named) - set(spec.params))
        missing = [p for p in spec.params if p not in named]
        if unknown or missing:
            raise DispatchError(
                f"{method}: bad arguments (missing={missing}, unknown={unknown})", method=method
            )
        return [named[p] for p in spec.params]
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        raise DispatchError(f"{method}: args must be a list or an object", method=method)
    if len(args) != len(spec.params):
        raise DispatchError(
            f"{method}: expected {len(spec.params)} argument(s) {list(spec.params)}, got {len(args)}",
            method=method,
        )
    return list(args)


def dispatch(
    contract: PaymentRequestContract,
    ctx: Optional[ExecutionContext],
    method: str,
    args: Union[Sequence[Any], Mapping[str, Any], None] = None,
) -> CallResult:
    spec = resolve(method)
    bound = _bind(spec, method, args)
    if spec.mutating and ctx is None:
        raise DispatchError(f"{method}: a caller context is required", method=method)

    fn = getattr(contract, spec.attr)
    before = contract.host.last
    try:
        value = fn(ctx, *bound) if spec.mutating else fn(*bound)
    except ContractError as e:
        fields = error_to_result_fields(e)
        inv = contract.host.last
        return CallResult(
            method=spec.attr,
            status=CallStatus(fields["status"]),
            error=fields["error"],
            invocation_id=(inv.invocation_id if inv is not None and inv is not before else None),
        )

    inv = contract.host.last
    ran = inv is not None and inv is not before
    return CallResult(
        method=spec.attr,
        status=CallStatus.FALSE if value is False else CallStatus.SUCCESS,
        value=value,
        events=tuple(r.event for r in inv.delivered) if ran else (),
        invocation_id=inv.invocation_id if ran else None,
    )


__all__ = ["MethodSpec", "METHODS", "to_snake", "resolve", "dispatch"]
