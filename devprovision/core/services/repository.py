"""
Repository Reconciler — keep the interface checkout on the pinned branch.

State machine over ``repo_state()``:

    ABSENT        → clone, checkout pinned branch          (fatal on failure)
    WRONG_REMOTE  → delete, clone, checkout pinned branch  (fatal on failure)
    NEEDS_UPDATE  → checkout (or create tracking branch), pull;
                    on pull failure reset --hard HEAD and pull once more;
                    still failing → warn and keep the stale checkout
    UP_TO_DATE    → no-op
"""

from __future__ import annotations

import logging

from devprovision.core.context import StepContext
from devprovision.core.models.state import RepoState, RepoStatus
from devprovision.core.models.step import StepResult
from devprovision.core.observability.logging_config import log_skip
from devprovision.core.services.probes import repo_state

logger = logging.getLogger(__name__)


def _short(commit: str | None) -> str:
    return commit[:8] if commit else "unknown"


class RepositoryReconciler:
    """Compute the checkout's state and take the minimal corrective action."""

    def __init__(self, ctx: StepContext):
        self._ctx = ctx
        self._config = ctx.config

    def reconcile(self, state: RepoState | None = None) -> StepResult:
        """Act on ``state`` (observed fresh when not given)."""
        if state is None:
            state = repo_state(self._ctx)

        logger.debug("Repository state: %s", state.model_dump())

        if state.status is RepoStatus.UP_TO_DATE:
            if not state.fetch_reachable:
                logger.warning(
                    "Cannot fetch from remote repository (timeout or network issue); "
                    "continuing with current repository state",
                )
                return StepResult.FAILED_SOFT
            log_skip(
                logger, "Repository already up to date (%s at %s)",
                self._config.branch, _short(state.local_commit),
            )
            return StepResult.SATISFIED

        if state.status is RepoStatus.NEEDS_UPDATE:
            return self._update(state)

        return self._clone(state)

    # ── Actions ─────────────────────────────────────────────────

    def _clone(self, state: RepoState) -> StepResult:
        ctx, config = self._ctx, self._config
        repo = config.repo_dir

        if state.exists:
            logger.info(
                "Removing existing %s directory (remote: %s)",
                config.repo_dir_name, state.remote_url or "not a git repository",
            )
            removed = ctx.fs.remove_tree(repo)
            if removed.failed:
                logger.error("Could not remove %s: %s", repo, removed.error)
                return StepResult.FAILED_FATAL

        logger.info("Cloning %s into %s...", config.upstream_url, repo)
        cloned = ctx.git.clone(config.upstream_url, repo)
        if cloned.failed:
            logger.error("Clone failed: %s", cloned.error)
            return StepResult.FAILED_FATAL

        if not self._switch_branch():
            logger.error("Cloned repository has no %s branch", config.branch)
            return StepResult.FAILED_FATAL

        after = repo_state(ctx, fetch=False)
        if after.current_branch != config.branch:
            logger.error(
                "Clone verification failed: on %s, expected %s",
                after.current_branch, config.branch,
            )
            return StepResult.FAILED_FATAL

        logger.info(
            "Repository cloned successfully (%s branch at %s)",
            config.branch, _short(after.local_commit),
        )
        return StepResult.ACTED

    def _update(self, state: RepoState) -> StepResult:
        ctx, config = self._ctx, self._config
        repo = config.repo_dir

        if state.current_branch != config.branch:
            logger.info(
                "Not on %s branch (current: %s), switching",
                config.branch, state.current_branch or "detached",
            )
        else:
            logger.info(
                "Repository updates available (local %s, remote %s)",
                _short(state.local_commit), _short(state.remote_commit),
            )

        if not self._switch_branch():
            logger.warning(
                "Could not check out %s; continuing with current checkout", config.branch,
            )
            return StepResult.FAILED_SOFT

        pulled = ctx.git.pull(repo, config.remote, config.branch, timeout=config.pull_timeout)
        if pulled.failed:
            logger.warning(
                "Failed to pull updates (%s); resetting and retrying",
                "timeout" if pulled.timed_out else pulled.error,
            )
            ctx.git.reset_hard(repo)
            pulled = ctx.git.pull(
                repo, config.remote, config.branch, timeout=config.pull_timeout,
            )
            if pulled.failed:
                logger.warning("Could not update repository, continuing with current version")
                return StepResult.FAILED_SOFT

        head = ctx.git.rev_parse(repo, "HEAD")
        logger.info("Repository updated successfully (%s at %s)", config.branch, _short(head))
        return StepResult.ACTED

    def _switch_branch(self) -> bool:
        """Check out the pinned branch, creating it from the remote if needed."""
        ctx, config = self._ctx, self._config
        repo = config.repo_dir

        if ctx.git.checkout(repo, config.branch).ok:
            return True

        logger.debug("Could not checkout %s, trying to create it", config.branch)
        return ctx.git.checkout_tracking(repo, config.branch, config.remote_branch).ok
