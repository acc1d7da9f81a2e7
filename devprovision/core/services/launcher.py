"""
Process Launcher — install dependencies, then hand over to the dev server.

``install_dependencies`` is gated by ``dependencies_fresh()``.  ``launch``
is the terminal step: it blocks on ``yarn start`` for as long as the
server runs.  An interrupt is forwarded to the server and re-raised so
the CLI exits nonzero.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Callable

from devprovision.core.context import StepContext
from devprovision.core.engine.pipeline import PipelineInterrupted
from devprovision.core.models.step import ProbeResult, StepResult
from devprovision.core.observability.logging_config import log_skip
from devprovision.core.services import probes

logger = logging.getLogger(__name__)

# Grace period for the dev server after a forwarded signal
_STOP_GRACE = 10


def install_dependencies(ctx: StepContext, probe: ProbeResult | None = None) -> StepResult:
    """Run ``yarn --network-timeout <ms>`` unless dependencies are fresh."""
    config = ctx.config
    repo = config.repo_dir

    if probe is None:
        probe = probes.dependencies_fresh(repo)
    if probe.satisfied:
        log_skip(logger, "%s", probe.detail)
        return StepResult.SATISFIED

    if not repo.is_dir():
        logger.error("%s directory not found!", config.repo_dir_name)
        return StepResult.FAILED_FATAL

    logger.info("%s; installing project dependencies (this may take a few minutes)...", probe.detail)
    receipt = ctx.node.install_dependencies(
        repo, config.yarn_network_timeout_ms, env=ctx.toolchain.env(),
    )
    if receipt.failed:
        logger.error("Failed to install dependencies: %s", receipt.error)
        return StepResult.FAILED_FATAL

    # yarn leaves node_modules untouched when nothing changed; bump it so
    # the freshness check converges
    installed = repo / probes.DEPENDENCY_DIR
    if installed.is_dir():
        os.utime(installed)

    after = probes.dependencies_fresh(repo)
    if not after.satisfied:
        logger.error("Dependencies installed but not detected: %s", after.detail)
        return StepResult.FAILED_FATAL
    logger.info("Dependencies installed successfully")
    return StepResult.ACTED


class DevServerLauncher:
    """Start the development server and wait on it.

    Args:
        sleep: Countdown delay function.
    """

    def __init__(self, sleep: Callable[[float], None] = time.sleep):
        self._sleep = sleep

    def probe(self, ctx: StepContext) -> ProbeResult:
        """The server is never "already running" as far as this tool knows."""
        return ProbeResult.needs_action("Start development server")

    def launch(self, ctx: StepContext, probe: ProbeResult | None = None) -> StepResult:
        config = ctx.config
        repo = config.repo_dir

        fresh = probes.dependencies_fresh(repo)
        if not fresh.satisfied:
            deps = install_dependencies(ctx, fresh)
            if deps.is_fatal:
                return deps

        env = ctx.toolchain.env()
        versions = {
            tool: ctx.node.version(tool, env=env) or "unknown"
            for tool in ("node", "npm", "yarn")
        }
        logger.info(
            "Using Node.js %s, npm %s, Yarn %s",
            versions["node"], versions["npm"], versions["yarn"],
        )
        logger.info(
            "Starting development server at %s (press Ctrl+C to stop)",
            config.dev_server_url,
        )
        for remaining in range(config.launch_countdown, 0, -1):
            logger.info("Starting in %d...", remaining)
            self._sleep(1)

        command = ctx.node.dev_server_command()
        try:
            proc = ctx.runner.spawn(command, cwd=repo, env_overrides=env)
        except OSError as e:
            logger.error("Could not start %s: %s", " ".join(command), e)
            return StepResult.FAILED_FATAL

        try:
            code = proc.wait()
        except PipelineInterrupted as interrupt:
            self._stop(proc, interrupt.signum)
            raise

        if code != 0:
            logger.error("Development server exited with code %d", code)
            return StepResult.FAILED_FATAL
        logger.info("Development server stopped")
        return StepResult.ACTED

    @staticmethod
    def _stop(proc: subprocess.Popen, signum: int) -> None:
        """Forward ``signum`` and wait briefly; kill if it lingers."""
        if proc.poll() is not None:
            return
        logger.debug("Forwarding signal %d to dev server", signum)
        proc.send_signal(signum)
        try:
            proc.wait(timeout=_STOP_GRACE)
        except subprocess.TimeoutExpired:
            proc.kill()
        except PipelineInterrupted:
            # Second Ctrl+C while waiting
            proc.kill()
