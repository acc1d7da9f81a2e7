"""
devprovision — CLI entrypoint.

Usage:
    devprovision
    devprovision --debug
    python -m devprovision --version
"""

from __future__ import annotations

import logging
import os
import signal
import sys
from collections.abc import Callable, Sequence

import click

from devprovision import __version__
from devprovision.core.config.settings import ConfigError, SetupConfig, load_config
from devprovision.core.context import StepContext
from devprovision.core.engine.pipeline import (
    PipelineInterrupted,
    Step,
    build_plan,
    is_interactive,
    render_summary,
    run_pipeline,
)
from devprovision.core.engine.steps import build_steps
from devprovision.core.observability.logging_config import setup_logging

logger = logging.getLogger(__name__)

_INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _raise_interrupt(signum: int, _frame: object) -> None:
    raise PipelineInterrupted(signum)


def install_interrupt_handler() -> dict[int, object]:
    """Route SIGINT/SIGTERM to ``PipelineInterrupted``; return the old handlers."""
    previous = {}
    for signum in _INTERRUPT_SIGNALS:
        previous[signum] = signal.getsignal(signum)
        signal.signal(signum, _raise_interrupt)
    return previous


def restore_handlers(previous: dict[int, object]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def run(
    config: SetupConfig,
    ctx: StepContext | None = None,
    steps: Sequence[Step] | None = None,
    interactive: bool | None = None,
    confirm: Callable[..., bool] = click.confirm,
) -> int:
    """Summarise, confirm, then run the pipeline.  Returns the exit code."""
    ctx = ctx or StepContext.build(config)
    steps = build_steps() if steps is None else steps
    if interactive is None:
        interactive = is_interactive(sys.stdout)

    logger.info("ErgoDEX interface development environment setup")
    logger.info("Project directory: %s", config.project_dir)

    try:
        plan = build_plan(steps, ctx)
        click.echo()
        for line in render_summary(plan):
            click.echo(line)
        click.echo()

        if interactive and not confirm("Continue?", default=True):
            logger.info("Setup cancelled by user")
            return 0

        report = run_pipeline(steps, ctx)
    except PipelineInterrupted:
        logger.error("Script interrupted. Cleaning up...")
        return 1

    if report.soft_failures:
        logger.warning(
            "Setup finished with warnings: %s",
            ", ".join(o.step for o in report.soft_failures),
        )
    return report.exit_code


@click.command()
@click.version_option(version=__version__, prog_name="devprovision")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
def cli(debug: bool) -> None:
    """Provision the ErgoDEX interface development environment and start it."""
    # ── Logging setup (once, at process start) ──────────────────
    if debug or os.environ.get("DEBUG") == "1":
        level = "DEBUG"
    else:
        level = os.environ.get("DEVPROVISION_LOG_LEVEL", "INFO")

    setup_logging(
        level=level,
        log_file=os.environ.get("DEVPROVISION_LOG_FILE"),
        log_file_level=os.environ.get("DEVPROVISION_LOG_FILE_LEVEL"),
    )
    logger.debug("Debug mode enabled")

    if os.geteuid() == 0:
        logger.warning("Running as root is not recommended for development")

    try:
        config = load_config()
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    previous = install_interrupt_handler()
    try:
        code = run(config)
    finally:
        restore_handlers(previous)
    sys.exit(code)


if __name__ == "__main__":
    cli()
