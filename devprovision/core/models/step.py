"""
Step and probe result types.

Probes answer "is this already done?" with a ProbeStatus.  Actors answer
"what happened?" with a StepResult.  Both are plain values returned by
every probe and actor; nothing is inferred from exit codes or globals.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class ProbeStatus(StrEnum):
    """Tri-state answer of a read-only probe."""

    SATISFIED = "satisfied"
    NEEDS_ACTION = "needs_action"
    INDETERMINATE = "indeterminate"


class StepResult(StrEnum):
    """Outcome of one pipeline step.

    SATISFIED   → nothing to do, state already correct.
    ACTED       → action taken and post-condition verified.
    SKIPPED     → step deliberately not run.
    FAILED_SOFT → best-effort failure, pipeline continues.
    FAILED_FATAL → pipeline aborts with a nonzero exit.
    """

    SATISFIED = "satisfied"
    ACTED = "acted"
    SKIPPED = "skipped"
    FAILED_SOFT = "failed_soft"
    FAILED_FATAL = "failed_fatal"

    @property
    def is_fatal(self) -> bool:
        return self is StepResult.FAILED_FATAL

    @property
    def is_failure(self) -> bool:
        return self in (StepResult.FAILED_SOFT, StepResult.FAILED_FATAL)


class ProbeResult(BaseModel):
    """What a probe observed.

    ``state`` carries the probe-specific descriptor (a ToolchainState,
    RepoState, resolved patch path, ...) so the actor that follows does
    not have to look again.
    """

    status: ProbeStatus
    detail: str = ""
    state: Any = None

    @property
    def satisfied(self) -> bool:
        return self.status is ProbeStatus.SATISFIED

    @classmethod
    def ok(cls, detail: str = "", state: Any = None) -> ProbeResult:
        return cls(status=ProbeStatus.SATISFIED, detail=detail, state=state)

    @classmethod
    def needs_action(cls, detail: str = "", state: Any = None) -> ProbeResult:
        return cls(status=ProbeStatus.NEEDS_ACTION, detail=detail, state=state)

    @classmethod
    def indeterminate(cls, detail: str = "", state: Any = None) -> ProbeResult:
        return cls(status=ProbeStatus.INDETERMINATE, detail=detail, state=state)
