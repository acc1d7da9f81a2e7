"""
Git adapter — version control operations on the collaborator checkout.

Uses the git CLI through the shared CommandRunner.  Credential prompts
are disabled for every call, so an unreachable or private remote fails
fast instead of hanging on a password prompt.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devprovision.adapters.base import Adapter
from devprovision.adapters.shell.command import CommandRunner
from devprovision.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

_NON_INTERACTIVE = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_ASKPASS": "/bin/echo",
}

# Local queries (rev-parse, branch, remote) should never take long
_LOCAL_TIMEOUT = 30


class GitAdapter(Adapter):
    """Git operations used by the repository probe and reconciler."""

    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return self._runner.which("git") is not None

    @staticmethod
    def is_repo(path: Path) -> bool:
        """Whether ``path`` is the top of a git working tree."""
        return (path / ".git").exists()

    # ── Queries ─────────────────────────────────────────────────

    def remote_url(self, repo: Path, remote: str = "origin") -> str | None:
        return self._query(["remote", "get-url", remote], repo)

    def current_branch(self, repo: Path) -> str | None:
        """Checked-out branch name; None when detached or unreadable."""
        return self._query(["branch", "--show-current"], repo)

    def rev_parse(self, repo: Path, ref: str) -> str | None:
        """Commit hash for ``ref`` (``HEAD``, ``origin/ergodex``, ...)."""
        return self._query(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], repo)

    # ── Network operations (timeout-bounded) ────────────────────

    def fetch(self, repo: Path, remote: str, timeout: float) -> Receipt:
        return self._git(["fetch", remote, "--quiet"], repo, timeout=timeout)

    def pull(self, repo: Path, remote: str, branch: str, timeout: float) -> Receipt:
        return self._git(["pull", remote, branch, "--quiet"], repo, timeout=timeout)

    def clone(self, url: str, dest: Path) -> Receipt:
        """Clone ``url`` into ``dest``.  No timeout: nothing to fall back to."""
        return self._git(["clone", url, str(dest)], dest.parent, timeout=None, capture=False)

    # ── Working tree operations ─────────────────────────────────

    def checkout(self, repo: Path, branch: str) -> Receipt:
        return self._git(["checkout", branch], repo)

    def checkout_tracking(self, repo: Path, branch: str, start_point: str) -> Receipt:
        """Create ``branch`` from ``start_point`` and check it out."""
        return self._git(["checkout", "-b", branch, start_point], repo)

    def reset_hard(self, repo: Path) -> Receipt:
        return self._git(["reset", "--hard", "HEAD"], repo)

    # ── Helpers ─────────────────────────────────────────────────

    def _git(
        self,
        args: list[str],
        cwd: Path,
        timeout: float | None = _LOCAL_TIMEOUT,
        capture: bool = True,
    ) -> Receipt:
        """Run a git command non-interactively."""
        receipt = self._runner.run(
            ["git", *args],
            cwd=cwd,
            timeout=timeout,
            env_overrides=_NON_INTERACTIVE,
            capture=capture,
        )
        if receipt.failed:
            logger.debug("git %s failed: %s", args[0], receipt.error)
        return receipt

    def _query(self, args: list[str], cwd: Path) -> str | None:
        """Run a read-only git command; stripped stdout or None."""
        receipt = self._git(args, cwd)
        if receipt.ok and receipt.output.strip():
            return receipt.output.strip()
        return None
