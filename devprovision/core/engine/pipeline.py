"""
Step Orchestrator — the fixed, ordered provisioning pipeline.

A pipeline is a list of Step records.  Before anything is changed every
step's probe runs once to build the summary; then each step runs as

    resolve toolchain → probe → act if needed (actor re-verifies) → next

FAILED_FATAL stops the pipeline with a nonzero exit.  FAILED_SOFT has
already been logged as a warning by its actor; the pipeline continues.
The orchestrator is the only place that decides to stop.

Flow:
    build_plan → render_summary → (confirm) → run_pipeline → PipelineReport
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TextIO

from devprovision.core.context import StepContext
from devprovision.core.models.step import ProbeResult, ProbeStatus, StepResult
from devprovision.core.observability.logging_config import log_skip

logger = logging.getLogger(__name__)

ProbeFn = Callable[[StepContext], ProbeResult]
ActFn = Callable[[StepContext, ProbeResult], StepResult]


class PipelineInterrupted(Exception):
    """Raised by the SIGINT/SIGTERM handler to abort the run."""

    def __init__(self, signum: int):
        super().__init__(f"Interrupted by signal {signum}")
        self.signum = signum


@dataclass(frozen=True)
class Step:
    """One pipeline step.

    Args:
        name: Identifier (``"node"``, ``"repository"``, ...).
        title: Progress label logged when the step starts.
        planned: Summary line when action is expected.
        done: Summary line when already satisfied.
        probe: Read-only state check.
        act: Corrective action; verifies its own post-condition.
        summary_probe: Cheaper probe for the summary (e.g. no network).
    """

    name: str
    title: str
    planned: str
    done: str
    probe: ProbeFn
    act: ActFn
    summary_probe: ProbeFn | None = None


@dataclass
class PlanEntry:
    """A step and what its probe said before execution."""

    step: Step
    probe: ProbeResult

    @property
    def needs_action(self) -> bool:
        return self.probe.status is not ProbeStatus.SATISFIED


@dataclass
class StepOutcome:
    """Result of one executed step."""

    step: str
    result: StepResult
    detail: str = ""
    duration_ms: int = 0


@dataclass
class PipelineReport:
    """Result of running the pipeline."""

    outcomes: list[StepOutcome] = field(default_factory=list)

    def _count(self, *results: StepResult) -> int:
        return sum(1 for o in self.outcomes if o.result in results)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def acted(self) -> int:
        return self._count(StepResult.ACTED)

    @property
    def satisfied(self) -> int:
        return self._count(StepResult.SATISFIED, StepResult.SKIPPED)

    @property
    def soft_failures(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if o.result is StepResult.FAILED_SOFT]

    @property
    def fatal(self) -> StepOutcome | None:
        return next((o for o in self.outcomes if o.result.is_fatal), None)

    @property
    def status(self) -> str:
        if self.fatal is not None:
            return "failed"
        if self.soft_failures:
            return "partial"
        return "ok"

    @property
    def exit_code(self) -> int:
        return 1 if self.fatal is not None else 0

    def result_of(self, step: str) -> StepResult | None:
        return next((o.result for o in self.outcomes if o.step == step), None)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "total": self.total,
            "acted": self.acted,
            "satisfied": self.satisfied,
            "soft_failures": [o.step for o in self.soft_failures],
            "fatal": self.fatal.step if self.fatal else None,
            "outcomes": [
                {
                    "step": o.step,
                    "result": o.result.value,
                    "detail": o.detail,
                    "duration_ms": o.duration_ms,
                }
                for o in self.outcomes
            ],
        }


# ── Summary ─────────────────────────────────────────────────────


def build_plan(steps: Sequence[Step], ctx: StepContext) -> list[PlanEntry]:
    """Run every step's probe once, without acting."""
    plan: list[PlanEntry] = []
    for step in steps:
        ctx.refresh_toolchain()
        probe_fn = step.summary_probe or step.probe
        result = probe_fn(ctx)
        logger.debug("Plan %s: %s (%s)", step.name, result.status, result.detail)
        plan.append(PlanEntry(step=step, probe=result))
    return plan


def render_summary(plan: Sequence[PlanEntry]) -> list[str]:
    """Human-readable "actions planned" lines."""
    lines = ["Actions planned:"]
    for entry in plan:
        if entry.needs_action:
            lines.append(f"  ✓ {entry.step.planned}")
        else:
            lines.append(f"  ✗ {entry.step.done}")
    return lines


def is_interactive(
    stream: TextIO,
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Attached to a terminal and not running under CI."""
    env = os.environ if environ is None else environ
    try:
        tty = stream.isatty()
    except (AttributeError, ValueError):
        tty = False
    return tty and not env.get("CI")


# ── Execution ───────────────────────────────────────────────────


def run_step(step: Step, ctx: StepContext) -> StepOutcome:
    """Probe one step and act only if the probe is not SATISFIED."""
    start = time.monotonic()
    ctx.refresh_toolchain()

    probe = step.probe(ctx)
    if probe.satisfied:
        log_skip(logger, "%s", probe.detail or f"{step.name} already satisfied")
        result = StepResult.SATISFIED
    else:
        logger.debug("%s: %s → acting", step.name, probe.detail)
        result = step.act(ctx, probe)

    return StepOutcome(
        step=step.name,
        result=result,
        detail=probe.detail,
        duration_ms=int((time.monotonic() - start) * 1000),
    )


def run_pipeline(steps: Sequence[Step], ctx: StepContext) -> PipelineReport:
    """Run ``steps`` in order, stopping at the first FAILED_FATAL.

    Raises:
        PipelineInterrupted: From the signal handler; propagated as-is.
    """
    report = PipelineReport()

    for index, step in enumerate(steps, start=1):
        logger.info("Step %d: %s...", index, step.title)
        outcome = run_step(step, ctx)
        report.outcomes.append(outcome)

        if outcome.result.is_fatal:
            logger.error("Step %d (%s) failed; aborting setup", index, step.name)
            break
        if outcome.result is StepResult.FAILED_SOFT:
            logger.debug("Step %d (%s) incomplete, continuing", index, step.name)

    logger.debug("Pipeline finished: %s", report.to_dict())
    return report
