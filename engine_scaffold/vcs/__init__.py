"""Version-control bootstrap for scaffolded projects."""

from .bootstrap import TERMINAL_STATE, RepoBootstrapper, RepoBootstrapResult, RepoState
from .git import CliResult, GitClient, GitHubCli, VersionControlError

__all__ = [
    "CliResult",
    "GitClient",
    "GitHubCli",
    "RepoBootstrapResult",
    "RepoBootstrapper",
    "RepoState",
    "TERMINAL_STATE",
    "VersionControlError",
]
