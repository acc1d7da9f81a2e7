"""
The provisioning pipeline — nine steps in a fixed order.

    base packages → nvm → Node.js → Yarn → repository → uiFee.ts patch
    → vite.config.ts patch → dependencies → dev server

Each step may assume every earlier step completed non-fatally.  Patch
targets are passed in, so the overrides can be swapped without touching
the pipeline.
"""

from __future__ import annotations

from collections.abc import Sequence

from devprovision.core.context import StepContext
from devprovision.core.data import PatchCatalog
from devprovision.core.engine.pipeline import Step
from devprovision.core.models.patch import PatchTarget
from devprovision.core.models.step import ProbeResult, StepResult
from devprovision.core.services import probes, toolchain
from devprovision.core.services.launcher import DevServerLauncher, install_dependencies
from devprovision.core.services.patching import PatchEngine
from devprovision.core.services.repository import RepositoryReconciler


def _node_probe(ctx: StepContext) -> ProbeResult:
    return probes.toolchain_present(ctx, "node", required_major=ctx.config.node_major)


def _yarn_probe(ctx: StepContext) -> ProbeResult:
    return probes.toolchain_present(ctx, "yarn")


def _reconcile(ctx: StepContext, probe: ProbeResult) -> StepResult:
    return RepositoryReconciler(ctx).reconcile(probe.state)


def _dependencies_probe(ctx: StepContext) -> ProbeResult:
    return probes.dependencies_fresh(ctx.config.repo_dir)


def patch_step(
    target: PatchTarget,
    name: str,
    title: str,
    planned: str,
    done: str,
) -> Step:
    """Step that keeps ``target`` patched inside the repository checkout."""

    def probe(ctx: StepContext) -> ProbeResult:
        return probes.file_marked(ctx.fs, ctx.config.repo_dir, target)

    def act(ctx: StepContext, _probe: ProbeResult) -> StepResult:
        return PatchEngine(ctx.fs, ctx.config.repo_dir).apply(target)

    return Step(name=name, title=title, planned=planned, done=done, probe=probe, act=act)


def build_steps(
    targets: Sequence[PatchTarget] | None = None,
    launcher: DevServerLauncher | None = None,
) -> list[Step]:
    """The ordered pipeline.

    Args:
        targets: ``(fee_target, build_config_target)``; defaults to the
            uiFee.ts / vite.config.ts overrides.
        launcher: Dev server launcher (tests pass one with a no-op sleep).
    """
    if targets is None:
        catalog = PatchCatalog()
        targets = (catalog.ui_fee, catalog.vite_config)
    fee_target, build_target = targets
    launcher = launcher or DevServerLauncher()

    return [
        Step(
            name="packages",
            title="Installing packages",
            planned="Install basic packages (curl, git, build tools)",
            done="Basic packages (already installed)",
            probe=probes.basic_packages,
            act=toolchain.install_base_packages,
        ),
        Step(
            name="nvm",
            title="Installing NVM",
            planned="Install NVM",
            done="NVM (already installed)",
            probe=probes.nvm_present,
            act=toolchain.install_nvm,
        ),
        Step(
            name="node",
            title="Installing Node.js",
            planned="Install Node.js (pinned major, set as default)",
            done="Node.js (already installed and default)",
            probe=_node_probe,
            act=toolchain.install_node,
        ),
        Step(
            name="yarn",
            title="Installing Yarn",
            planned="Install Yarn",
            done="Yarn (already installed)",
            probe=_yarn_probe,
            act=toolchain.install_yarn,
        ),
        Step(
            name="repository",
            title="Setting up repository",
            planned="Check/update repository (pinned branch)",
            done="Repository (already up to date)",
            probe=probes.repository,
            act=_reconcile,
            summary_probe=lambda ctx: probes.repository(ctx, fetch=False),
        ),
        patch_step(
            fee_target,
            name="fee-patch",
            title="Updating UI fee configuration",
            planned="Modify UI fee configuration",
            done="UI fee (already modified)",
        ),
        patch_step(
            build_target,
            name="build-config-patch",
            title="Updating Vite configuration",
            planned="Modify Vite configuration (disable ESLint checker)",
            done="Vite configuration (already modified)",
        ),
        Step(
            name="dependencies",
            title="Installing project dependencies",
            planned="Install project dependencies",
            done="Dependencies (already installed)",
            probe=_dependencies_probe,
            act=install_dependencies,
        ),
        Step(
            name="launch",
            title="Starting development server",
            planned="Start development server",
            done="Development server",
            probe=launcher.probe,
            act=launcher.launch,
        ),
    ]
