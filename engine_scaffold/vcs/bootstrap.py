"""Repository bootstrap for a freshly written skeleton.

A strictly sequential state machine::

    NOT_STARTED -> INITIALIZED -> REMOTE_CONFIGURED -> COMMITTED -> PUSHED

Every transition can fail on its own.  A failure stops the machine at the
last state reached and is recorded, never raised, so whatever was already
done (the skeleton, a local repository, a local commit) is kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from engine_scaffold.config import GitConfig
from engine_scaffold.models import FailureKind, GitMode
from engine_scaffold.utils import console

from .git import GitClient, GitHubCli, VersionControlError


class RepoState(str, Enum):
    NOT_STARTED = "not_started"
    INITIALIZED = "initialized"
    REMOTE_CONFIGURED = "remote_configured"
    COMMITTED = "committed"
    PUSHED = "pushed"


TERMINAL_STATE: dict[GitMode, RepoState] = {
    GitMode.SKIP: RepoState.NOT_STARTED,
    GitMode.LOCAL: RepoState.INITIALIZED,
    GitMode.GITHUB: RepoState.PUSHED,
}


@dataclass
class RepoBootstrapResult:
    """How far the bootstrap got, and why it stopped."""

    mode: GitMode
    state: RepoState = RepoState.NOT_STARTED
    initialized: bool = False
    already_initialized: bool = False
    remote_created: bool = False
    remote_url: str | None = None
    committed: bool = False
    pushed: bool = False
    failure_kind: FailureKind | None = None
    first_failure_reason: str | None = None
    next_steps: list[str] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        """True when the machine reached the terminal state for its mode."""
        return self.failure_kind is None and self.state is TERMINAL_STATE[self.mode]

    def advance(self, state: RepoState) -> None:
        self.state = state

    def fail(self, kind: FailureKind, reason: str) -> "RepoBootstrapResult":
        if self.failure_kind is None:
            self.failure_kind = kind
            self.first_failure_reason = reason
        return self


class RepoBootstrapper:
    """Initialises git and, for GitHub mode, creates and pushes the remote."""

    def __init__(
        self,
        config: GitConfig | None = None,
        remote_cli: GitHubCli | None = None,
        git_factory: Callable[[Path], GitClient] | None = None,
    ) -> None:
        self.config = config or GitConfig()
        self.remote_cli = remote_cli or GitHubCli(
            binary=self.config.remote_cli, timeout=self.config.command_timeout
        )
        self._git_factory = git_factory or (
            lambda path: GitClient(
                path, binary=self.config.git_binary, timeout=self.config.command_timeout
            )
        )

    async def bootstrap(
        self,
        project_dir: Path,
        mode: GitMode,
        repo_name: str,
        *,
        private: bool = True,
        description: str = "",
    ) -> RepoBootstrapResult:
        """Run the bootstrap sequence for *mode* against *project_dir*."""
        result = RepoBootstrapResult(mode=mode)
        if mode is GitMode.SKIP:
            return result

        git = self._git_factory(project_dir)

        # NOT_STARTED -> INITIALIZED
        if git.is_repository():
            result.already_initialized = True
            console.print("  [dim]Existing git repository found, skipping init[/dim]")
        else:
            try:
                await git.init()
            except VersionControlError as exc:
                return self._halt(result, project_dir, FailureKind.VERSION_CONTROL_STEP_FAILED, str(exc))
        result.initialized = True
        result.advance(RepoState.INITIALIZED)
        console.print(f"  [green]+[/green] Git repository ready in {project_dir}")

        if mode is GitMode.LOCAL:
            return result

        # INITIALIZED -> REMOTE_CONFIGURED
        available = await self.remote_cli.check_available()
        if not available.ok:
            return self._halt(
                result, project_dir, FailureKind.REMOTE_HOSTING_UNAVAILABLE, available.message,
                repo_name=repo_name, private=private,
            )
        authenticated = await self.remote_cli.check_authenticated()
        if not authenticated.ok:
            return self._halt(
                result, project_dir, FailureKind.REMOTE_HOSTING_UNAUTHENTICATED,
                authenticated.message or f"{self.remote_cli.binary} is not authenticated",
                repo_name=repo_name, private=private,
            )

        existing = await self.remote_cli.repo_url(repo_name)
        if existing.ok and existing.message:
            url = existing.message
            console.print(f"  [yellow]Remote repository already exists:[/yellow] {url}")
        else:
            created = await self.remote_cli.create_repo(
                repo_name, private=private, description=description, cwd=project_dir
            )
            if not created.ok or not created.message:
                return self._halt(
                    result, project_dir, FailureKind.VERSION_CONTROL_STEP_FAILED,
                    f"Could not create remote repository {repo_name}: {created.message}",
                    repo_name=repo_name, private=private,
                )
            url = created.message
            result.remote_created = True
            console.print(f"  [green]+[/green] Created remote repository {url}")

        try:
            await git.set_remote(self.config.remote_name, url)
        except VersionControlError as exc:
            return self._halt(
                result, project_dir, FailureKind.VERSION_CONTROL_STEP_FAILED, str(exc), url=url
            )
        result.remote_url = url
        result.advance(RepoState.REMOTE_CONFIGURED)

        # REMOTE_CONFIGURED -> COMMITTED
        try:
            await git.add_all()
            await git.commit(self.config.commit_message)
        except VersionControlError as exc:
            return self._halt(result, project_dir, FailureKind.VERSION_CONTROL_STEP_FAILED, str(exc))
        result.committed = True
        result.advance(RepoState.COMMITTED)

        # COMMITTED -> PUSHED
        try:
            await git.rename_branch(self.config.default_branch)
            await git.push(self.config.remote_name, self.config.default_branch)
        except VersionControlError as exc:
            return self._halt(result, project_dir, FailureKind.VERSION_CONTROL_STEP_FAILED, str(exc))
        result.pushed = True
        result.advance(RepoState.PUSHED)
        console.print(f"  [green]+[/green] Pushed {self.config.default_branch} to {url}")

        return result

    # -- Failure handling --------------------------------------------------

    def _halt(
        self,
        result: RepoBootstrapResult,
        project_dir: Path,
        kind: FailureKind,
        reason: str,
        *,
        repo_name: str = "",
        private: bool = True,
        url: str = "",
    ) -> RepoBootstrapResult:
        result.fail(kind, reason)
        result.next_steps.extend(
            self.manual_steps(result.state, kind, project_dir, repo_name, private, url)
        )
        console.print(f"  [yellow]Repository bootstrap stopped at {result.state.value}:[/yellow] {reason}")
        return result

    def manual_steps(
        self,
        state: RepoState,
        kind: FailureKind,
        project_dir: Path,
        repo_name: str = "",
        private: bool = True,
        url: str = "",
    ) -> list[str]:
        """Commands the user can run to finish what the bootstrap could not."""
        cfg = self.config
        visibility = "--private" if private else "--public"
        in_dir = f"in {project_dir}"

        if state is RepoState.NOT_STARTED:
            return [f"Run `{cfg.git_binary} init` {in_dir}"]

        if state is RepoState.INITIALIZED:
            steps: list[str] = []
            if kind is FailureKind.REMOTE_HOSTING_UNAVAILABLE:
                steps.append("Install the GitHub CLI from https://cli.github.com")
            if kind in (FailureKind.REMOTE_HOSTING_UNAVAILABLE, FailureKind.REMOTE_HOSTING_UNAUTHENTICATED):
                steps.append(f"Run `{cfg.remote_cli} auth login`")
            steps.append(
                f"Run `{cfg.git_binary} add -A && {cfg.git_binary} commit -m \"{cfg.commit_message}\"` {in_dir}"
            )
            if url:
                steps.append(f"Run `{cfg.git_binary} remote add {cfg.remote_name} {url}` {in_dir}")
                steps.append(
                    f"Run `{cfg.git_binary} push -u {cfg.remote_name} {cfg.default_branch}` {in_dir}"
                )
            else:
                steps.append(
                    f"Run `{cfg.remote_cli} repo create {repo_name or project_dir.name} {visibility} "
                    f"--source . --remote {cfg.remote_name} --push` {in_dir}"
                )
            return steps

        if state is RepoState.REMOTE_CONFIGURED:
            return [
                f"Run `{cfg.git_binary} add -A && {cfg.git_binary} commit -m \"{cfg.commit_message}\"` {in_dir}",
                f"Run `{cfg.git_binary} branch -M {cfg.default_branch} && "
                f"{cfg.git_binary} push -u {cfg.remote_name} {cfg.default_branch}` {in_dir}",
            ]

        return [
            f"Run `{cfg.git_binary} branch -M {cfg.default_branch} && "
            f"{cfg.git_binary} push -u {cfg.remote_name} {cfg.default_branch}` {in_dir}"
        ]
