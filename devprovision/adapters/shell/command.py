"""
Shell command adapter — the single place subprocesses are started.

Every other adapter builds an argv and hands it to ``CommandRunner.run``.
Timeouts, environment overrides, sudo prefixing and output capture are
handled here once, and every outcome comes back as a Receipt.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from devprovision.adapters.base import Adapter
from devprovision.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

# Keep receipts small; install logs can be megabytes
_TAIL = 2000


class CommandRunner(Adapter):
    """Run commands and capture their outcome as receipts.

    ``capture=False`` streams output straight to the terminal; use it for
    long installs and anything that may prompt (``sudo``).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def which(self, binary: str, path: str | None = None) -> str | None:
        """Resolve ``binary`` on ``path`` (default: the process PATH)."""
        return shutil.which(binary, path=path)

    def is_root(self) -> bool:
        return os.geteuid() == 0

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: str | Path | None = None,
        timeout: float | None = None,
        env_overrides: Mapping[str, str] | None = None,
        capture: bool = True,
        sudo: bool = False,
    ) -> Receipt:
        """Run ``cmd`` and return a receipt.

        Args:
            cmd: Command argv.
            cwd: Working directory.
            timeout: Seconds before the command is killed. ``None`` waits forever.
            env_overrides: Variables layered over the current environment.
            capture: Capture stdout/stderr instead of inheriting the terminal.
            sudo: Prefix with ``sudo`` unless already root.
        """
        argv = list(cmd)
        if sudo and not self.is_root():
            argv = ["sudo", *argv]
        label = " ".join(argv)

        env = os.environ.copy()
        if env_overrides:
            env.update(env_overrides)

        logger.debug("Executing: %s (cwd=%s, timeout=%s)", label, cwd, timeout)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                capture_output=capture,
                text=True,
                timeout=timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                operation=label,
                error=f"Command timed out after {timeout}s",
                timed_out=True,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                operation=label,
                error=f"Command not found: {argv[0]}",
                return_code=127,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                operation=label,
                error=f"Command execution error: {e}",
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (result.stdout or "").strip()[-_TAIL:]
        stderr = (result.stderr or "").strip()[-_TAIL:]

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                operation=label,
                output=output,
                return_code=0,
                duration_ms=elapsed_ms,
                metadata={"stderr": stderr} if stderr else {},
            )

        logger.debug("Command failed (exit %d): %s", result.returncode, label)
        return Receipt.failure(
            adapter=self.name,
            operation=label,
            error=stderr or f"Command exited with code {result.returncode}",
            output=output,
            return_code=result.returncode,
            duration_ms=elapsed_ms,
        )

    def run_shell(
        self,
        script: str,
        **kwargs: Any,
    ) -> Receipt:
        """Run a bash snippet (needed for shell functions such as ``nvm``)."""
        return self.run(["bash", "-c", script], **kwargs)

    def spawn(
        self,
        cmd: Sequence[str],
        *,
        cwd: str | Path | None = None,
        env_overrides: Mapping[str, str] | None = None,
    ) -> subprocess.Popen:
        """Start a long-running process attached to the terminal.

        Raises:
            OSError: If the process cannot be started.
        """
        env = os.environ.copy()
        if env_overrides:
            env.update(env_overrides)
        logger.debug("Spawning: %s (cwd=%s)", " ".join(cmd), cwd)
        return subprocess.Popen(list(cmd), cwd=cwd, env=env)
