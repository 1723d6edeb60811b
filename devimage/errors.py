"""
errors.py

Base exception shared by every devimage module. Each module defines its own
subclass; the CLI turns any of them into a diagnostic line and exit status 1.
"""

from __future__ import annotations


class DevImageError(RuntimeError):
    pass
