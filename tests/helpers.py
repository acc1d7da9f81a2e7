"""
Plain helpers shared by the test modules — mock scripting and git setup.
"""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from devprovision.adapters.mock import MockRunner

BASE_BINARIES = ("curl", "wget", "git", "gcc", "make", "python3")

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def script_node(runner: MockRunner, version: str = "v20.11.0") -> None:
    """Make the mock behave like nvm with ``version`` as the default node."""
    runner.add_binary("node", "npm")
    runner.set_response("nvm --version", output="0.39.4")
    runner.set_response("nvm version default", output=version)
    runner.set_response(
        "nvm which default", output=f"/home/dev/.nvm/versions/node/{version}/bin/node",
    )
    runner.set_response("node --version", output=version)
    runner.set_response("npm --version", output="10.2.4")


# ── Real git ────────────────────────────────────────────────────

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def git(cwd: Path, *args: str) -> str:
    """Run git for fixture setup; raises on failure."""
    env = {**os.environ, **GIT_ENV}
    result = subprocess.run(
        ["git", *args], cwd=cwd, env=env, check=True, capture_output=True, text=True,
    )
    return result.stdout.strip()


def commit(repo: Path, name: str, content: str) -> str:
    (repo / name).parent.mkdir(parents=True, exist_ok=True)
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", f"update {name}")
    return git(repo, "rev-parse", "HEAD")
