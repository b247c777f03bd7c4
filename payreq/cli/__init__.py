"""
payreq.cli — command-line entry points.

- run_calls : replay a JSON call script against a contract store
"""
