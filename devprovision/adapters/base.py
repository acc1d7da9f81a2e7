"""
Adapter base — the contract between the provisioning core and tools.

Probes and actors only talk to external tools (git, nvm, npm, yarn, the
OS package manager) through adapters.  Adapters are thin: they build the
command line, run it through the shared CommandRunner and hand back a
Receipt.  Deciding what a result *means* is left to the core.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'git', 'nvm')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available.

        Should be fast and never raise.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
