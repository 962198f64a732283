"""Reservation client package.

Resilient delivery of reservation form submissions to a script-hosted backend:
validation, anti-automation gate and sanitization run before any network
activity; delivery tries a direct request and falls back to a callback-script
(JSONP) transport.
"""

from __future__ import annotations

__version__ = "2.0.0"

__all__ = ["__version__"]
