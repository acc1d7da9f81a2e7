"""
Node.js adapter — node/npm/yarn toolchain operations.

Every call takes the PATH of the resolved toolchain explicitly, so the
node that answers is the nvm-managed one, never whatever happens to be
first on the caller's PATH.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path

from devprovision.adapters.base import Adapter
from devprovision.adapters.shell.command import CommandRunner
from devprovision.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"v?(\d+\.\d+\.\d+)")


class NodeAdapter(Adapter):
    """Node.js, npm and Yarn operations.

    ``env`` arguments are overrides from ``ToolchainContext.env()``.
    """

    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    @property
    def name(self) -> str:
        return "node"

    def is_available(self) -> bool:
        return self._runner.which("node") is not None

    def version(self, tool: str, env: Mapping[str, str] | None = None) -> str | None:
        """Reported version of ``tool`` (``node`` → ``"v20.11.0"``, ``yarn`` → ``"1.22.22"``).

        Returns the raw first token so callers can compare with ``v20.``
        prefixes; None if the tool is missing or does not answer.
        """
        receipt = self._runner.run([tool, "--version"], timeout=30, env_overrides=env)
        if not receipt.ok:
            return None
        match = _VERSION_RE.search(receipt.output)
        if not match:
            return None
        return f"v{match.group(1)}" if tool == "node" else match.group(1)

    def install_yarn(self, env: Mapping[str, str] | None = None) -> Receipt:
        """``npm install -g yarn`` into the active Node installation."""
        return self._runner.run(
            ["npm", "install", "-g", "yarn"], env_overrides=env, capture=False,
        )

    def install_dependencies(
        self,
        project: Path,
        network_timeout_ms: int,
        env: Mapping[str, str] | None = None,
    ) -> Receipt:
        """``yarn --network-timeout <ms>`` in ``project``.  No process timeout."""
        return self._runner.run(
            ["yarn", "--network-timeout", str(network_timeout_ms)],
            cwd=project,
            env_overrides=env,
            capture=False,
        )

    @staticmethod
    def dev_server_command() -> list[str]:
        return ["yarn", "start"]
