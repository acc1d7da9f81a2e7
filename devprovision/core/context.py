"""
Run context — everything a probe or actor needs, passed explicitly.

``ToolchainContext`` is the resolved view of the nvm-managed Node.js
installation: which ``node`` the default alias points at and the PATH
that puts it first.  It is resolved fresh at the start of every step
(never cached across steps) and handed to every call that runs node,
npm or yarn, instead of sourcing ``nvm.sh`` into the process.

``StepContext`` bundles the configuration, the adapters and the current
ToolchainContext for one pipeline run.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from devprovision.adapters.languages.node import NodeAdapter
from devprovision.adapters.languages.nvm import NvmAdapter
from devprovision.adapters.shell.command import CommandRunner
from devprovision.adapters.shell.filesystem import FilesystemAdapter
from devprovision.adapters.system.packages import SystemPackagesAdapter
from devprovision.adapters.vcs.git import GitAdapter
from devprovision.core.config.settings import SetupConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolchainContext:
    """Resolved nvm / Node.js toolchain."""

    nvm_dir: Path | None = None
    nvm_present: bool = False
    default_version: str | None = None
    node_bin_dir: Path | None = None
    base_path: str = field(default_factory=lambda: os.environ.get("PATH", ""))

    @property
    def path(self) -> str:
        """PATH with the resolved node bin directory first."""
        if self.node_bin_dir is None:
            return self.base_path
        return os.pathsep.join(p for p in (str(self.node_bin_dir), self.base_path) if p)

    def env(self) -> dict[str, str]:
        """Environment overrides for node/npm/yarn subprocesses."""
        env = {"PATH": self.path}
        if self.nvm_dir is not None:
            env["NVM_DIR"] = str(self.nvm_dir)
        return env

    @classmethod
    def resolve(cls, nvm: NvmAdapter) -> ToolchainContext:
        """Ask nvm where the default node lives.

        Missing nvm or an unset default alias are valid answers, not
        errors: the context then simply carries no node bin directory.
        """
        if not nvm.is_available():
            logger.debug("nvm not found at %s", nvm.nvm_dir)
            return cls(nvm_dir=nvm.nvm_dir, nvm_present=False)

        default_version = nvm.resolve_version("default")
        node_bin = nvm.which("default") if default_version else None
        ctx = cls(
            nvm_dir=nvm.nvm_dir,
            nvm_present=True,
            default_version=default_version,
            node_bin_dir=node_bin.parent if node_bin else None,
        )
        logger.debug(
            "Toolchain resolved: default=%s bin=%s", ctx.default_version, ctx.node_bin_dir,
        )
        return ctx


@dataclass
class StepContext:
    """Configuration, adapters and toolchain for one pipeline run."""

    config: SetupConfig
    runner: CommandRunner
    fs: FilesystemAdapter
    git: GitAdapter
    nvm: NvmAdapter
    node: NodeAdapter
    packages: SystemPackagesAdapter
    toolchain: ToolchainContext = field(default_factory=ToolchainContext)

    @classmethod
    def build(
        cls,
        config: SetupConfig,
        runner: CommandRunner | None = None,
        packages: SystemPackagesAdapter | None = None,
    ) -> StepContext:
        """Wire every adapter to one shared CommandRunner."""
        runner = runner or CommandRunner()
        return cls(
            config=config,
            runner=runner,
            fs=FilesystemAdapter(),
            git=GitAdapter(runner),
            nvm=NvmAdapter(runner, nvm_dir=config.nvm_dir),
            node=NodeAdapter(runner),
            packages=packages or SystemPackagesAdapter(runner),
        )

    def refresh_toolchain(self) -> ToolchainContext:
        """Re-resolve the toolchain (start of each step, and after changing it)."""
        self.toolchain = ToolchainContext.resolve(self.nvm)
        return self.toolchain

    def which(self, tool: str) -> str | None:
        """Resolve ``tool`` on the toolchain PATH."""
        return self.runner.which(tool, path=self.toolchain.path)
