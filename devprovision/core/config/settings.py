"""
Configuration — the constants that pin the desired state.

There is no config file.  Defaults describe the ErgoDEX interface setup;
any field can be overridden through a ``DEVPROVISION_<FIELD>`` environment
variable (e.g. ``DEVPROVISION_BRANCH=main``), validated by pydantic.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "DEVPROVISION_"

# Fields parsed from comma-separated env values
_LIST_FIELDS = ("base_binaries",)


class ConfigError(Exception):
    """Raised when an environment override is invalid."""


class SetupConfig(BaseModel):
    """Desired state for one provisioning run."""

    # ── Project layout ───────────────────────────────────────────
    project_dir: Path = Field(default_factory=Path.cwd)
    repo_dir_name: str = "interface"

    # ── Collaborator repository ──────────────────────────────────
    upstream_url: str = "https://github.com/spectrum-finance/interface"
    upstream_match: str = "spectrum-finance/interface"
    branch: str = "ergodex"
    remote: str = "origin"
    fetch_timeout: float = 10.0
    pull_timeout: float = 15.0

    # ── Toolchain ────────────────────────────────────────────────
    node_major: str = "20"
    nvm_version: str = "v0.39.4"
    nvm_install_url: str = (
        "https://raw.githubusercontent.com/nvm-sh/nvm/{version}/install.sh"
    )
    nvm_dir: Path | None = None
    base_binaries: list[str] = Field(
        default_factory=lambda: ["curl", "wget", "git", "gcc", "make", "python3"]
    )

    # ── Dependencies / launch ────────────────────────────────────
    yarn_network_timeout_ms: int = 100_000
    dev_server_port: int = 3000
    launch_countdown: int = 3

    @property
    def repo_dir(self) -> Path:
        """Absolute path of the collaborator checkout."""
        return (self.project_dir / self.repo_dir_name).resolve()

    @property
    def remote_branch(self) -> str:
        """Remote-tracking ref of the pinned branch, e.g. ``origin/ergodex``."""
        return f"{self.remote}/{self.branch}"

    @property
    def nvm_script_url(self) -> str:
        return self.nvm_install_url.format(version=self.nvm_version)

    @property
    def dev_server_url(self) -> str:
        return f"http://localhost:{self.dev_server_port}"


def load_config(
    environ: Mapping[str, str] | None = None,
    **overrides: object,
) -> SetupConfig:
    """Build the run configuration.

    Precedence: keyword ``overrides``  >  ``DEVPROVISION_*`` env vars  >  defaults.

    Raises:
        ConfigError: If an override does not validate.
    """
    env = os.environ if environ is None else environ

    data: dict[str, object] = {}
    for name in SetupConfig.model_fields:
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None or raw == "":
            continue
        if name in _LIST_FIELDS:
            data[name] = [item.strip() for item in raw.split(",") if item.strip()]
        else:
            data[name] = raw
        logger.debug("Config override from env: %s=%s", name, raw)

    data.update(overrides)

    try:
        return SetupConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
