"""
Toolchain actors — base packages, nvm, Node.js and Yarn.

Each actor runs only after its probe answered NEEDS_ACTION (or
INDETERMINATE), takes the minimal action and re-probes to confirm the
post-condition.  Installs have no timeout: they are prerequisites with
no safe fallback.
"""

from __future__ import annotations

import logging

from devprovision.core.context import StepContext
from devprovision.core.models.step import ProbeResult, StepResult
from devprovision.core.services import probes

logger = logging.getLogger(__name__)


def install_base_packages(ctx: StepContext, probe: ProbeResult) -> StepResult:
    """Batch-install build tools with the distro's package manager."""
    packages = ctx.packages
    distro = packages.distro()
    family = packages.family()

    if family is None:
        logger.warning(
            "Unsupported distro: %s. Please ensure %s are installed manually.",
            distro, ", ".join(probe.state or ctx.config.base_binaries),
        )
        return StepResult.FAILED_SOFT

    if family == "debian" and packages.clean_nodesource():
        logger.info("Cleaned stale NodeSource apt repositories")

    logger.info("%s on %s; installing base packages...", probe.detail, distro)
    receipt = packages.install()
    if receipt.failed:
        logger.error("Base package installation failed: %s", receipt.error)
        return StepResult.FAILED_FATAL

    after = probes.basic_packages(ctx)
    if not after.satisfied:
        logger.warning("Packages installed but still missing on PATH: %s", after.detail)
        return StepResult.FAILED_SOFT
    logger.info("Base packages installed")
    return StepResult.ACTED


def install_nvm(ctx: StepContext, probe: ProbeResult) -> StepResult:
    """Install nvm with the upstream install script."""
    config = ctx.config
    logger.info("Installing NVM %s into %s...", config.nvm_version, ctx.nvm.nvm_dir)
    receipt = ctx.nvm.install_self(config.nvm_script_url)
    if receipt.failed:
        logger.error("NVM installation failed: %s", receipt.error)
        return StepResult.FAILED_FATAL

    after = probes.nvm_present(ctx)
    if not after.satisfied:
        logger.error("NVM installation could not be verified: %s", after.detail)
        return StepResult.FAILED_FATAL
    logger.info("NVM installed successfully (%s)", after.state.version)
    return StepResult.ACTED


def install_node(ctx: StepContext, probe: ProbeResult) -> StepResult:
    """Make the pinned Node.js major installed, default and active.

    Reuses an already-installed version of that major (only ``alias
    default`` + ``use``); otherwise ``nvm install`` first.  The version
    reported afterwards must start with the pinned major, else FATAL.
    """
    major = ctx.config.node_major
    nvm = ctx.nvm

    if nvm.ls(major).ok:
        logger.info("Node.js v%s installed but not active. Setting as default...", major)
    else:
        logger.info("Installing Node.js v%s...", major)
        installed = nvm.install(major)
        if installed.failed:
            logger.error("nvm install %s failed: %s", major, installed.error)
            return StepResult.FAILED_FATAL

    for receipt in (nvm.alias_default(major), nvm.use(major)):
        if receipt.failed:
            logger.debug("%s failed: %s", receipt.operation, receipt.error)

    ctx.refresh_toolchain()
    after = probes.toolchain_present(ctx, "node", required_major=major)
    if not after.satisfied:
        logger.error(
            "Failed to install Node.js v%s. Current version: %s",
            major, after.state.version if after.state else "none",
        )
        return StepResult.FAILED_FATAL

    npm_version = ctx.node.version("npm", env=ctx.toolchain.env())
    logger.info(
        "Node.js %s set as default (npm %s)", after.state.version, npm_version or "unknown",
    )
    return StepResult.ACTED


def install_yarn(ctx: StepContext, probe: ProbeResult) -> StepResult:
    """``npm install -g yarn`` into the resolved Node.js installation."""
    logger.info("Installing Yarn package manager...")
    receipt = ctx.node.install_yarn(env=ctx.toolchain.env())
    if receipt.failed:
        logger.error("Yarn installation failed: %s", receipt.error)
        return StepResult.FAILED_FATAL

    after = probes.toolchain_present(ctx, "yarn")
    if not after.satisfied:
        logger.error("Yarn installation could not be verified: %s", after.detail)
        return StepResult.FAILED_FATAL
    logger.info("Yarn installed: %s", after.state.version)
    return StepResult.ACTED
