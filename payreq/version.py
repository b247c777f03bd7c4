"""
payreq.version — the installed distribution's version.

Read from package metadata so `pyproject.toml` stays the single place the
version is bumped. A source checkout that was never installed reports
"0+unknown".
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

DIST_NAME = "payreq"

try:
    __version__ = version(DIST_NAME)
except PackageNotFoundError:
    __version__ = "0+unknown"

__all__ = ["__version__", "DIST_NAME"]
