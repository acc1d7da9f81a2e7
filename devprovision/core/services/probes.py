"""
Probe library — read-only questions about the machine.

Every probe is a side-effect-free function of the current environment
returning a ProbeResult: SATISFIED, NEEDS_ACTION or INDETERMINATE.
Probes never raise on missing state; absence is an answer.  They log
at DEBUG only: the orchestrator and actors emit the one user-facing line
per decision.

The one exception to "no side effects" is ``repo_state(fetch=True)``,
which updates remote-tracking refs with ``git fetch``.  It does not touch
the working tree.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devprovision.adapters.shell.filesystem import FilesystemAdapter
from devprovision.core.context import StepContext
from devprovision.core.models.patch import PatchTarget
from devprovision.core.models.state import RepoState, RepoStatus, ToolchainState
from devprovision.core.models.step import ProbeResult

logger = logging.getLogger(__name__)

DEPENDENCY_LOCK = "yarn.lock"
DEPENDENCY_MANIFEST = "package.json"
DEPENDENCY_DIR = "node_modules"


# ── Base packages ───────────────────────────────────────────────


def basic_packages(ctx: StepContext) -> ProbeResult:
    """SATISFIED iff every base binary resolves on PATH."""
    missing = ctx.packages.missing_binaries(ctx.config.base_binaries)
    if not missing:
        return ProbeResult.ok("Basic packages already installed", state=[])
    return ProbeResult.needs_action(f"Missing packages: {', '.join(missing)}", state=missing)


# ── Toolchain ───────────────────────────────────────────────────


def nvm_present(ctx: StepContext) -> ProbeResult:
    """SATISFIED iff ``nvm.sh`` is installed and ``nvm --version`` answers."""
    state = ToolchainState(tool="nvm", binary_present=ctx.nvm.is_available())
    if not state.binary_present:
        return ProbeResult.needs_action("NVM not installed", state=state)

    state.version = ctx.nvm.nvm_version()
    if state.version is None:
        return ProbeResult.needs_action(
            f"NVM found at {ctx.nvm.nvm_dir} but not working", state=state,
        )
    return ProbeResult.ok(f"NVM already installed (version: {state.version})", state=state)


def toolchain_present(
    ctx: StepContext,
    tool: str,
    required_major: str | None = None,
) -> ProbeResult:
    """Probe one tool on the resolved toolchain PATH.

    Without ``required_major``: SATISFIED iff the tool resolves and reports
    a version.  With it: the reported version must also start with that
    major and (for node) be the nvm default.  INDETERMINATE when nvm
    itself is missing, since there is no toolchain to look in.
    """
    toolchain = ctx.toolchain
    if not toolchain.nvm_present:
        return ProbeResult.indeterminate(
            f"{tool}: nvm not installed yet",
            state=ToolchainState(tool=tool),
        )

    state = ToolchainState(tool=tool, binary_present=ctx.which(tool) is not None)
    if state.binary_present:
        state.version = ctx.node.version(tool, env=toolchain.env())
    if tool == "node":
        default = toolchain.default_version or ""
        state.is_default = bool(required_major) and default.startswith(f"v{required_major}.")
    else:
        state.is_default = state.binary_present

    logger.debug("Probe %s: %s", tool, state.model_dump())

    if not state.binary_present or state.version is None:
        return ProbeResult.needs_action(f"{tool} not installed", state=state)

    if required_major is None:
        return ProbeResult.ok(
            f"{tool} already installed (version: {state.version})", state=state,
        )

    if state.major == required_major and state.is_default:
        return ProbeResult.ok(
            f"{tool} v{required_major} already installed and set as default ({state.version})",
            state=state,
        )
    return ProbeResult.needs_action(
        f"{tool} {state.version} active, default {toolchain.default_version or 'unset'}; "
        f"want v{required_major}",
        state=state,
    )


# ── Patch targets ───────────────────────────────────────────────


def locate(fs: FilesystemAdapter, root: Path, target: PatchTarget) -> Path | None:
    """First existing candidate path, then a recursive filename search."""
    path = fs.resolve_first(root, target.candidate_paths)
    if path is None:
        path = fs.search(root, target.filename)
    return path


def file_marked(fs: FilesystemAdapter, root: Path, target: PatchTarget) -> ProbeResult:
    """SATISFIED iff the located file carries the target's marker.

    INDETERMINATE when no candidate exists; ``state`` is the resolved path.
    """
    path = locate(fs, root, target)
    if path is None:
        return ProbeResult.indeterminate(f"{target.filename} not found under {root}")

    content = fs.read_text(path)
    if content is not None and target.marker(content):
        return ProbeResult.ok(f"{target.filename} already modified", state=path)
    return ProbeResult.needs_action(f"{target.filename} needs modification", state=path)


# ── Repository ──────────────────────────────────────────────────


def repo_state(ctx: StepContext, fetch: bool = True) -> RepoState:
    """Observe and classify the collaborator checkout.

    Order of checks: path → git repo → origin URL → branch → commits.
    Anything at the checkout path that is not a git repository (a plain
    directory, a stray file, a dangling symlink) is WRONG_REMOTE.
    Branch identity is decided before any commit comparison.  When the
    fetch fails (timeout, network, auth) the checkout is classified
    UP_TO_DATE so the run continues with what is on disk.
    """
    config = ctx.config
    repo = config.repo_dir

    if not (repo.exists() or repo.is_symlink()):
        return RepoState()

    if not ctx.git.is_repo(repo):
        return RepoState(exists=True, status=RepoStatus.WRONG_REMOTE)

    state = RepoState(exists=True, is_git_repo=True)
    state.remote_url = ctx.git.remote_url(repo, config.remote)
    if not state.remote_url or config.upstream_match not in state.remote_url:
        state.status = RepoStatus.WRONG_REMOTE
        return state

    state.current_branch = ctx.git.current_branch(repo)
    state.local_commit = ctx.git.rev_parse(repo, "HEAD")
    if state.current_branch != config.branch:
        state.status = RepoStatus.NEEDS_UPDATE
        return state

    if not fetch:
        state.status = RepoStatus.UP_TO_DATE
        return state

    receipt = ctx.git.fetch(repo, config.remote, timeout=config.fetch_timeout)
    state.fetch_reachable = receipt.ok
    if not receipt.ok:
        logger.debug("Fetch failed (timed_out=%s): %s", receipt.timed_out, receipt.error)
        state.status = RepoStatus.UP_TO_DATE
        return state

    state.remote_commit = ctx.git.rev_parse(repo, config.remote_branch)
    if state.remote_commit is None or state.local_commit != state.remote_commit:
        state.status = RepoStatus.NEEDS_UPDATE
    else:
        state.status = RepoStatus.UP_TO_DATE
    return state


def repository(ctx: StepContext, fetch: bool = True) -> ProbeResult:
    """Probe wrapper over ``repo_state``.

    With ``fetch=False`` (summary mode) an existing, correctly wired
    checkout is INDETERMINATE: freshness is only known after a fetch.
    """
    state = repo_state(ctx, fetch=fetch)
    detail = {
        RepoStatus.ABSENT: "Repository not found, will need to clone",
        RepoStatus.WRONG_REMOTE: (
            f"{ctx.config.repo_dir_name} is not a checkout of {ctx.config.upstream_match}"
        ),
        RepoStatus.NEEDS_UPDATE: "Repository updates available",
        RepoStatus.UP_TO_DATE: "Repository already up to date",
    }[state.status]

    if state.status is RepoStatus.UP_TO_DATE:
        if not fetch:
            return ProbeResult.indeterminate(
                "Repository exists, will check for updates during setup", state=state,
            )
        if not state.fetch_reachable:
            # Up to date by fallback only; the reconciler reports it
            return ProbeResult.indeterminate(
                "Remote unreachable, freshness unknown", state=state,
            )
        return ProbeResult.ok(detail, state=state)
    return ProbeResult.needs_action(detail, state=state)


# ── Dependencies ────────────────────────────────────────────────


def dependencies_fresh(repo: Path) -> ProbeResult:
    """SATISFIED iff the lock file and install dir exist and the manifest
    is not newer than the install dir."""
    lock = repo / DEPENDENCY_LOCK
    manifest = repo / DEPENDENCY_MANIFEST
    installed = repo / DEPENDENCY_DIR

    if not installed.is_dir():
        return ProbeResult.needs_action(f"{DEPENDENCY_DIR} missing")
    if not lock.is_file():
        return ProbeResult.needs_action(f"No {DEPENDENCY_LOCK}, need to install")

    try:
        manifest_mtime = manifest.stat().st_mtime
    except OSError:
        manifest_mtime = None
    if manifest_mtime is not None and manifest_mtime > installed.stat().st_mtime:
        return ProbeResult.needs_action(
            f"{DEPENDENCY_MANIFEST} has been updated, need to reinstall dependencies"
        )
    return ProbeResult.ok("Dependencies already installed and up to date")
