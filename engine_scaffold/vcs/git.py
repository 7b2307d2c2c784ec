"""Thin async wrappers around the ``git`` and ``gh`` executables.

Git commands raise ``VersionControlError`` on failure, mirroring how the
bootstrapper treats every git step as independently fallible.  GitHub CLI
probes return a ``CliResult`` so "not installed" and "not logged in" can be
reported as ordinary outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from engine_scaffold.utils import run_command


class VersionControlError(Exception):
    """Raised when a git command fails."""

    def __init__(self, message: str, command: str = "", stderr: str = ""):
        self.command = command
        self.stderr = stderr
        super().__init__(message)


@dataclass(frozen=True)
class CliResult:
    """Outcome of one remote-hosting CLI call."""

    ok: bool
    message: str = ""
    stdout: str = ""


# ---------------------------------------------------------------------------
# git
# ---------------------------------------------------------------------------


class GitClient:
    """Runs git commands inside one working tree."""

    def __init__(self, repo_path: str | Path, binary: str = "git", timeout: float = 120.0):
        self.repo_path = Path(repo_path)
        self.binary = binary
        self.timeout = timeout

    async def run(self, *args: str) -> str:
        """Run ``git <args>`` and return stdout.

        Raises:
            VersionControlError: If git is missing, times out or exits non-zero.
        """
        cmd = [self.binary, *args]
        cmd_str = " ".join(cmd)
        try:
            returncode, stdout, stderr = await run_command(
                cmd, cwd=self.repo_path, timeout=self.timeout
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise VersionControlError(
                f"Cannot run {self.binary}: {exc}", command=cmd_str
            ) from exc

        if returncode != 0:
            raise VersionControlError(
                f"Git command failed (exit {returncode}): {cmd_str}\n{stderr}",
                command=cmd_str,
                stderr=stderr,
            )
        return stdout

    def is_repository(self) -> bool:
        return (self.repo_path / ".git").exists()

    async def init(self) -> None:
        await self.run("init")

    async def add_all(self) -> None:
        await self.run("add", "-A")

    async def commit(self, message: str) -> None:
        await self.run("commit", "-m", message)

    async def rename_branch(self, name: str) -> None:
        await self.run("branch", "-M", name)

    async def push(self, remote: str, branch: str) -> None:
        await self.run("push", "-u", remote, branch)

    async def remote_url(self, remote: str) -> str | None:
        """Return the URL of *remote*, or ``None`` if it is not configured."""
        try:
            return await self.run("remote", "get-url", remote) or None
        except VersionControlError:
            return None

    async def set_remote(self, remote: str, url: str) -> None:
        """Point *remote* at *url*, adding it if necessary."""
        if await self.remote_url(remote) is None:
            await self.run("remote", "add", remote, url)
        else:
            await self.run("remote", "set-url", remote, url)


# ---------------------------------------------------------------------------
# GitHub CLI
# ---------------------------------------------------------------------------


class GitHubCli:
    """The subset of ``gh`` the bootstrapper needs."""

    def __init__(self, binary: str = "gh", timeout: float = 120.0):
        self.binary = binary
        self.timeout = timeout

    async def _call(self, *args: str, cwd: Path | None = None) -> CliResult:
        cmd = [self.binary, *args]
        try:
            returncode, stdout, stderr = await run_command(cmd, cwd=cwd, timeout=self.timeout)
        except (FileNotFoundError, PermissionError) as exc:
            return CliResult(False, f"{self.binary} is not installed or not executable: {exc}")
        if returncode != 0:
            return CliResult(False, stderr or stdout or f"exit code {returncode}", stdout)
        return CliResult(True, stdout, stdout)

    async def check_available(self) -> CliResult:
        return await self._call("--version")

    async def check_authenticated(self) -> CliResult:
        return await self._call("auth", "status")

    async def repo_url(self, repo: str) -> CliResult:
        """Look up *repo*; ``ok`` is false when it does not exist."""
        result = await self._call("repo", "view", repo, "--json", "url", "--jq", ".url")
        if result.ok:
            return CliResult(True, result.stdout.strip(), result.stdout)
        return result

    async def create_repo(
        self,
        repo: str,
        *,
        private: bool = True,
        description: str = "",
        cwd: Path | None = None,
    ) -> CliResult:
        """Create *repo* on GitHub and return its URL in ``message``."""
        args = ["repo", "create", repo, "--private" if private else "--public"]
        if description:
            args.extend(["--description", description])
        result = await self._call(*args, cwd=cwd)
        if not result.ok:
            return result
        url = next(
            (line.strip() for line in result.stdout.splitlines() if line.strip().startswith("https://")),
            "",
        )
        if not url:
            # Older gh releases print nothing useful; ask for the URL.
            return await self.repo_url(repo)
        return CliResult(True, url, result.stdout)
