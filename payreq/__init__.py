"""
payreq — fungible token ledger with an escrow-free payment-request workflow.

A creator registers a payable obligation with an expiry, the designated
recipient settles it before expiry, and the creator may cancel it while it is
unsettled. A fixed per-request service fee flows to the contract owner.

This package exposes only lightweight metadata at import time. Import the
contract surface explicitly:

    from payreq.runtime.contract import PaymentRequestContract
    from payreq.runtime.context import ExecutionContext
"""

from .version import __version__

__all__ = ["__version__"]
