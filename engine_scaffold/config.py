"""Engine Scaffold configuration.

Centralised, typed configuration for the scaffolding pipeline.  All settings
use Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.

Ambient process state (working directory, workspace root, host platform,
extra toolchain roots from the environment) is collected once into a
``ScaffoldContext`` and passed explicitly into the pipeline.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field

from engine_scaffold.models import TemplateKind

# ---------------------------------------------------------------------------
# Toolchain profiles
# ---------------------------------------------------------------------------


def _default_unity_roots(platform: str) -> list[Path]:
    if platform == "win32":
        program_files = os.environ.get("ProgramFiles", "C:\\Program Files")
        return [Path(program_files) / "Unity" / "Hub" / "Editor"]
    if platform == "darwin":
        return [Path("/Applications/Unity/Hub/Editor")]
    return [Path.home() / "Unity" / "Hub" / "Editor"]


def _default_unreal_roots(platform: str) -> list[Path]:
    if platform == "win32":
        program_files = os.environ.get("ProgramFiles", "C:\\Program Files")
        return [Path(program_files) / "Epic Games", Path("D:\\Epic Games")]
    if platform == "darwin":
        return [Path("/Users/Shared/Epic Games")]
    return [Path.home() / "UnrealEngine"]


class ToolchainProfile(BaseModel):
    """Where and how to find one engine's installations.

    Install layouts differ per platform, so ``executable_relpaths`` lists
    every known location of the executable relative to a version directory;
    the first one that exists wins.
    """

    kind: TemplateKind
    roots: list[Path] = Field(default_factory=list)
    version_pattern: str = Field(..., description="Regex a version directory name must match")
    executable_relpaths: list[str] = Field(..., min_length=1)
    default_version: str = Field(
        ..., description="Engine version written into descriptors when nothing is installed"
    )


def unity_profile(platform: str = sys.platform) -> ToolchainProfile:
    return ToolchainProfile(
        kind=TemplateKind.UNITY,
        roots=_default_unity_roots(platform),
        version_pattern=r"^\d{4}\.\d+(\.\d+[abfp]\d+)?$",
        executable_relpaths=[
            "Editor/Unity.exe",
            "Unity.app/Contents/MacOS/Unity",
            "Editor/Unity",
        ],
        default_version="2022.3.0f1",
    )


def unreal_profile(platform: str = sys.platform) -> ToolchainProfile:
    return ToolchainProfile(
        kind=TemplateKind.UNREAL,
        roots=_default_unreal_roots(platform),
        version_pattern=r"^UE_\d+\.\d+$",
        executable_relpaths=[
            "Engine/Binaries/DotNET/UnrealBuildTool/UnrealBuildTool.exe",
            "Engine/Binaries/DotNET/UnrealBuildTool/UnrealBuildTool",
        ],
        default_version="UE_5.3",
    )


# ---------------------------------------------------------------------------
# Stage tuning
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """Tuning knobs for the engine project-generation stage."""

    unity_timeout: float = Field(
        default=900.0, gt=0, description="Seconds to wait for Unity to create the project"
    )
    unreal_timeout: float = Field(
        default=600.0, gt=0, description="UnrealBuildTool process timeout in seconds"
    )
    poll_interval: float = Field(default=2.0, gt=0, description="Seconds between evidence polls")
    exit_grace: float = Field(
        default=30.0, ge=0, description="Seconds a detached process may linger after completing"
    )


class GitConfig(BaseModel):
    """Repository bootstrap settings."""

    git_binary: str = Field(default="git")
    remote_cli: str = Field(default="gh")
    remote_name: str = Field(default="origin")
    default_branch: str = Field(default="main")
    commit_message: str = Field(default="Initial commit")
    command_timeout: int = Field(default=120, ge=1, description="Per-command timeout in seconds")


class Config(BaseModel):
    """Global Engine Scaffold configuration.

    Instances are typically created once by the CLI entry point and then
    passed through the rest of the system.
    """

    unity: ToolchainProfile = Field(default_factory=unity_profile)
    unreal: ToolchainProfile = Field(default_factory=unreal_profile)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    organization: str = Field(default="company")

    # Tokens that may legitimately survive rendering and be filled in by hand.
    fill_later_tokens: list[str] = Field(
        default_factory=lambda: ["AUTHOR_NAME", "TAGLINE", "SUPPORT_URL"]
    )

    def profile_for(self, kind: TemplateKind) -> ToolchainProfile:
        """Return the toolchain profile for *kind*."""
        return self.unity if kind is TemplateKind.UNITY else self.unreal

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def for_platform(cls, platform: str) -> "Config":
        """Default configuration with the install roots of *platform*."""
        return cls(unity=unity_profile(platform), unreal=unreal_profile(platform))

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        platform: str | None = None,
    ) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            SCAFFOLD_CONFIG (path to a saved JSON config, used as the base),
            SCAFFOLD_ORGANIZATION, SCAFFOLD_UNITY_TIMEOUT,
            SCAFFOLD_UNREAL_TIMEOUT, SCAFFOLD_POLL_INTERVAL,
            SCAFFOLD_DEFAULT_BRANCH, SCAFFOLD_COMMIT_MESSAGE,
            SCAFFOLD_GIT_TIMEOUT.

        *platform* selects the default install roots when no config file is
        given (defaults to the running platform).
        """
        env = os.environ if environ is None else environ

        if env.get("SCAFFOLD_CONFIG"):
            base = cls.load(Path(env["SCAFFOLD_CONFIG"]))
        else:
            base = cls.for_platform(platform or sys.platform)

        generation_kwargs: dict[str, Any] = {}
        if env.get("SCAFFOLD_UNITY_TIMEOUT"):
            generation_kwargs["unity_timeout"] = float(env["SCAFFOLD_UNITY_TIMEOUT"])
        if env.get("SCAFFOLD_UNREAL_TIMEOUT"):
            generation_kwargs["unreal_timeout"] = float(env["SCAFFOLD_UNREAL_TIMEOUT"])
        if env.get("SCAFFOLD_POLL_INTERVAL"):
            generation_kwargs["poll_interval"] = float(env["SCAFFOLD_POLL_INTERVAL"])

        git_kwargs: dict[str, Any] = {}
        if env.get("SCAFFOLD_DEFAULT_BRANCH"):
            git_kwargs["default_branch"] = env["SCAFFOLD_DEFAULT_BRANCH"]
        if env.get("SCAFFOLD_COMMIT_MESSAGE"):
            git_kwargs["commit_message"] = env["SCAFFOLD_COMMIT_MESSAGE"]
        if env.get("SCAFFOLD_GIT_TIMEOUT"):
            git_kwargs["command_timeout"] = int(env["SCAFFOLD_GIT_TIMEOUT"])

        return base.model_copy(
            update={
                "organization": env.get("SCAFFOLD_ORGANIZATION", base.organization),
                "generation": base.generation.model_copy(update=generation_kwargs),
                "git": base.git.model_copy(update=git_kwargs),
            }
        )


# ---------------------------------------------------------------------------
# Ambient context
# ---------------------------------------------------------------------------


def _split_roots(raw: str | None) -> list[Path]:
    if not raw:
        return []
    return [Path(p).expanduser() for p in raw.split(os.pathsep) if p.strip()]


@dataclass(frozen=True)
class ScaffoldContext:
    """Ambient process state, read once at start-up."""

    cwd: Path
    workspace_root: Path
    platform: str = sys.platform
    extra_roots: dict[TemplateKind, list[Path]] = field(default_factory=dict)

    @classmethod
    def collect(
        cls,
        environ: Mapping[str, str] | None = None,
        cwd: Path | None = None,
    ) -> "ScaffoldContext":
        """Snapshot the environment and working directory.

        ``SCAFFOLD_WORKSPACE`` overrides the workspace root (defaults to the
        working directory).  ``SCAFFOLD_UNITY_ROOTS`` / ``SCAFFOLD_UNREAL_ROOTS``
        add toolchain search roots, separated by ``os.pathsep``.
        """
        env = os.environ if environ is None else environ
        current = (cwd or Path.cwd()).resolve()
        workspace = env.get("SCAFFOLD_WORKSPACE")
        return cls(
            cwd=current,
            workspace_root=Path(workspace).expanduser().resolve() if workspace else current,
            extra_roots={
                TemplateKind.UNITY: _split_roots(env.get("SCAFFOLD_UNITY_ROOTS")),
                TemplateKind.UNREAL: _split_roots(env.get("SCAFFOLD_UNREAL_ROOTS")),
            },
        )

    def toolchain_roots(self, profile: ToolchainProfile) -> list[Path]:
        """Extra roots from the environment first, then the profile defaults."""
        return [*self.extra_roots.get(profile.kind, []), *profile.roots]
