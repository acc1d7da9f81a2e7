"""
Receipt model — the adapter result contract.

Adapters run external commands and return receipts. Never exceptions.
Probes and actors read the receipt status instead of catching errors,
so a failed ``git fetch`` and a missing ``git`` binary look the same to
the caller: a failed receipt with a readable error.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of one adapter operation.

    ``operation`` is a short label such as ``"git fetch"`` or
    ``"nvm install 20"``; it is what ends up in debug logs.
    """

    adapter: str
    operation: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    return_code: int | None = None
    timed_out: bool = False

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the operation succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the operation failed."""
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        operation: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            operation=operation,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        operation: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            operation=operation,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        operation: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt."""
        return cls(
            adapter=adapter,
            operation=operation,
            status="skipped",
            output=reason,
            **kwargs,
        )
