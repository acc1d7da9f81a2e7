"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from devprovision.adapters.mock import MockRunner
from devprovision.adapters.system.packages import SystemPackagesAdapter
from devprovision.core.config.settings import SetupConfig, load_config
from devprovision.core.context import StepContext
from tests.helpers import BASE_BINARIES, commit, git


@pytest.fixture
def config(tmp_path: Path) -> SetupConfig:
    """Configuration rooted in a temporary project directory."""
    project = tmp_path / "project"
    project.mkdir()
    return load_config(environ={}, project_dir=project, nvm_dir=tmp_path / "nvm")


@pytest.fixture
def runner() -> MockRunner:
    """Mock runner with the base binaries already on PATH."""
    return MockRunner(binaries=BASE_BINARIES)


@pytest.fixture
def os_release(tmp_path: Path) -> Path:
    path = tmp_path / "os-release"
    path.write_text('NAME="Ubuntu"\nID=ubuntu\nVERSION_ID="22.04"\n')
    return path


@pytest.fixture
def ctx(config: SetupConfig, runner: MockRunner, os_release: Path) -> StepContext:
    return StepContext.build(
        config,
        runner=runner,
        packages=SystemPackagesAdapter(runner, os_release=os_release),
    )


@pytest.fixture
def nvm_installed(config: SetupConfig) -> Path:
    """A non-empty nvm.sh in the configured NVM_DIR."""
    config.nvm_dir.mkdir(parents=True, exist_ok=True)
    script = config.nvm_dir / "nvm.sh"
    script.write_text("# nvm\n")
    return script


@pytest.fixture
def restore_logging():
    """Put the root logger back after a test calls setup_logging()."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.raiseExceptions = True


@pytest.fixture
def upstream(tmp_path: Path) -> Path:
    """Local stand-in for the upstream interface repo.

    ``main`` is checked out; ``ergodex`` is one commit ahead of it.
    """
    repo = tmp_path / "spectrum-finance" / "interface"
    repo.mkdir(parents=True)
    git(repo, "init", "-q")
    git(repo, "checkout", "-q", "-b", "main")
    commit(repo, "README.md", "interface\n")
    git(repo, "checkout", "-q", "-b", "ergodex")
    commit(repo, "package.json", "{}\n")
    git(repo, "checkout", "-q", "main")
    return repo
