"""
Adapters — the only layer that touches external tools.

Every adapter call returns a Receipt; nothing here raises on a failed
command, a timeout, or a missing binary.
"""

from devprovision.adapters.base import Adapter

__all__ = ["Adapter"]
