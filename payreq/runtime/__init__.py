"""
payreq.runtime — contract execution.

Submodules (thin overview)
--------------------------
- context    : ExecutionContext (caller identity, invocation metadata)
- host       : per-invocation transaction wrapper (journal, events, guard)
- safe_math  : u64/u32 range checks and checked arithmetic
- ledger     : token balances, allowances and transfer primitives
- access     : immutable owner, owner-gated service fee
- registry   : payment request records and lifecycle
- contract   : PaymentRequestContract, the public surface
- dispatcher : method-name routing to CallResult

Nothing is imported eagerly here; `payreq.types` depends on `safe_math` and
must be able to import it without pulling in the contract.
"""

__all__ = (
    "context",
    "host",
    "safe_math",
    "ledger",
    "access",
    "registry",
    "contract",
    "dispatcher",
)
