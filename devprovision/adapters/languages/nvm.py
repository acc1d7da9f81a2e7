"""
nvm adapter — Node Version Manager operations.

nvm is a shell function, not a binary, so every call runs in a fresh
``bash`` that sources ``$NVM_DIR/nvm.sh`` first.  Nothing sourced here
leaks into the Python process: the caller turns the answers into a
ToolchainContext (see ``devprovision.core.context``).
"""

from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path

from devprovision.adapters.base import Adapter
from devprovision.adapters.shell.command import CommandRunner
from devprovision.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

# Version queries answer instantly once nvm.sh is sourced
_QUERY_TIMEOUT = 30


def default_nvm_dir() -> Path:
    """Locate the nvm directory.

    ``$NVM_DIR`` wins; otherwise the first existing default location,
    falling back to ``~/.nvm`` (where the install script puts it).
    """
    env_dir = os.environ.get("NVM_DIR", "")
    if env_dir:
        return Path(env_dir).expanduser()

    home = Path.home()
    for candidate in (home / ".nvm", home / ".config" / "nvm"):
        if candidate.is_dir():
            return candidate
    return home / ".nvm"


class NvmAdapter(Adapter):
    """Drive nvm through a sourced bash shell."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        nvm_dir: Path | None = None,
    ):
        self._runner = runner or CommandRunner()
        self._nvm_dir = nvm_dir

    @property
    def name(self) -> str:
        return "nvm"

    @property
    def nvm_dir(self) -> Path:
        return self._nvm_dir or default_nvm_dir()

    @property
    def script(self) -> Path:
        return self.nvm_dir / "nvm.sh"

    def is_available(self) -> bool:
        """Whether ``nvm.sh`` exists and is non-empty."""
        try:
            return self.script.is_file() and self.script.stat().st_size > 0
        except OSError:
            return False

    # ── Install ─────────────────────────────────────────────────

    def install_self(self, script_url: str) -> Receipt:
        """Run the upstream ``install.sh`` (``curl -o- URL | bash``)."""
        nvm_dir = self.nvm_dir
        nvm_dir.mkdir(parents=True, exist_ok=True)
        return self._runner.run_shell(
            f"set -o pipefail; curl -o- {shlex.quote(script_url)} | bash",
            env_overrides={"NVM_DIR": str(nvm_dir)},
            capture=False,
        )

    # ── nvm subcommands ─────────────────────────────────────────

    def nvm_version(self) -> str | None:
        receipt = self._nvm(["--version"], timeout=_QUERY_TIMEOUT)
        if not receipt.ok:
            return None
        return receipt.output.strip() or None

    def install(self, version: str) -> Receipt:
        """``nvm install <version>``.  No timeout: a download with no fallback."""
        return self._nvm(["install", version], capture=False)

    def alias_default(self, version: str) -> Receipt:
        return self._nvm(["alias", "default", version], timeout=_QUERY_TIMEOUT)

    def use(self, version: str) -> Receipt:
        return self._nvm(["use", version], timeout=_QUERY_TIMEOUT)

    def ls(self, version: str) -> Receipt:
        """``nvm ls <version>``; ok iff such a version is installed."""
        return self._nvm(["ls", version], timeout=_QUERY_TIMEOUT)

    def resolve_version(self, alias: str) -> str | None:
        """Concrete version an alias points at (``"default"`` → ``"v20.11.0"``)."""
        receipt = self._nvm(["version", alias], timeout=_QUERY_TIMEOUT)
        version = receipt.output.strip() if receipt.ok else ""
        if not version or version in ("N/A", "none", "system"):
            return None
        return version

    def which(self, alias: str) -> Path | None:
        """Path to the ``node`` binary selected by ``alias``."""
        receipt = self._nvm(["which", alias], timeout=_QUERY_TIMEOUT)
        if not receipt.ok:
            return None
        lines = [line.strip() for line in receipt.output.splitlines() if line.strip()]
        # nvm may print notices before the path; the path is the last line
        if not lines or not lines[-1].startswith("/"):
            return None
        return Path(lines[-1])

    # ── Helpers ─────────────────────────────────────────────────

    def _nvm(
        self,
        args: list[str],
        timeout: float | None = None,
        capture: bool = True,
    ) -> Receipt:
        script = (
            f"export NVM_DIR={shlex.quote(str(self.nvm_dir))}; "
            f'. "$NVM_DIR/nvm.sh" && nvm {shlex.join(args)}'
        )
        receipt = self._runner.run_shell(script, timeout=timeout, capture=capture)
        if receipt.failed:
            logger.debug("nvm %s failed: %s", " ".join(args), receipt.error)
        return receipt
