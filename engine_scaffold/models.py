"""Core data models for the scaffolding pipeline.

``ProjectRequest`` is the fully-resolved description of one scaffolding run.
It is built once at the CLI boundary (every "auto" value already resolved)
and never mutated afterwards.  ``StageReport`` and ``ScaffoldSummary`` carry
the per-stage outcome that is rendered at the end of a run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
ORGANIZATION_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")
PLACEHOLDER_MARKER_PATTERN = re.compile(r"\[[A-Z][A-Z0-9_]*\]")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TemplateKind(str, Enum):
    """Which engine the skeleton targets."""

    UNITY = "unity"
    UNREAL = "unreal"


class GitMode(str, Enum):
    """How far the repository bootstrap goes."""

    GITHUB = "github"
    LOCAL = "local"
    SKIP = "skip"


class FailureKind(str, Enum):
    """Every failure the pipeline knows how to report."""

    TOOLCHAIN_NOT_FOUND = "ToolchainNotFound"
    DESTRUCTIVE_OVERWRITE_REFUSED = "DestructiveOverwriteRefused"
    UNRESOLVED_PLACEHOLDER = "UnresolvedPlaceholder"
    PARTIAL_WRITE_FAILURE = "PartialWriteFailure"
    FILESYSTEM_UNWRITABLE = "FilesystemUnwritable"
    EXTERNAL_PROCESS_START_FAILED = "ExternalProcessStartFailed"
    EXTERNAL_PROCESS_TIMEOUT = "ExternalProcessTimeout"
    EXTERNAL_PROCESS_NON_ZERO_EXIT = "ExternalProcessNonZeroExit"
    REMOTE_HOSTING_UNAVAILABLE = "RemoteHostingUnavailable"
    REMOTE_HOSTING_UNAUTHENTICATED = "RemoteHostingUnauthenticated"
    VERSION_CONTROL_STEP_FAILED = "VersionControlStepFailed"


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class ProjectRequest(BaseModel):
    """A validated, immutable scaffolding request."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Project / plugin name (identifier-like)")
    root_path: Path = Field(..., description="Directory the project folder is created in")
    template_kind: TemplateKind
    version_hint: str | None = Field(
        default=None, description="Preferred engine version (exact or substring match)"
    )
    git_mode: GitMode = Field(default=GitMode.SKIP)
    organization: str = Field(default="company", description="Reverse-DNS organisation segment")
    description: str = Field(default="")
    public_repo: bool = Field(default=False)
    run_generation: bool = Field(
        default=True, description="Invoke the engine to generate project files"
    )

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if not PROJECT_NAME_PATTERN.match(value):
            raise ValueError(
                f"Invalid project name {value!r}: must start with a letter and "
                "contain only letters, digits and underscores"
            )
        return value

    @field_validator("version_hint")
    @classmethod
    def _normalise_hint(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value or value.lower() == "auto":
            return None
        return value

    @field_validator("organization")
    @classmethod
    def _check_organization(cls, value: str) -> str:
        value = value.strip().lower()
        if not ORGANIZATION_PATTERN.match(value):
            raise ValueError(f"Invalid organization segment {value!r}")
        return value

    @field_validator("description")
    @classmethod
    def _check_description(cls, value: str) -> str:
        # Skeleton files are scanned for leftover [TOKEN] markers after rendering.
        marker = PLACEHOLDER_MARKER_PATTERN.search(value)
        if marker:
            raise ValueError(
                f"Description must not contain placeholder-style markers such as "
                f"{marker.group(0)!r}; use parentheses or lowercase instead"
            )
        return value

    @property
    def project_dir(self) -> Path:
        """The directory the skeleton is written into."""
        return self.root_path / self.name

    @property
    def name_slug(self) -> str:
        """``MyPlugin`` -> ``my-plugin``."""
        s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1-\2", self.name)
        s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", s1)
        return re.sub(r"[-_\s]+", "-", s2).lower()

    @property
    def package_id(self) -> str:
        """Unity package identifier, e.g. ``com.company.my-plugin``."""
        return f"com.{self.organization}.{self.name_slug}"


# ---------------------------------------------------------------------------
# Run reporting
# ---------------------------------------------------------------------------


@dataclass
class StageReport:
    """Outcome of one pipeline stage."""

    name: str
    attempted: bool = False
    succeeded: bool = False
    reason: str | None = None
    failure_kind: FailureKind | None = None
    next_steps: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def ok(self, **details: Any) -> "StageReport":
        self.attempted = True
        self.succeeded = True
        self.details.update(details)
        return self

    def skip(self, reason: str) -> "StageReport":
        self.attempted = False
        self.succeeded = False
        self.reason = reason
        return self

    def fail(
        self,
        kind: FailureKind,
        reason: str,
        *next_steps: str,
        **details: Any,
    ) -> "StageReport":
        self.attempted = True
        self.succeeded = False
        self.failure_kind = kind
        self.reason = reason
        self.next_steps.extend(next_steps)
        self.details.update(details)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "reason": self.reason,
            "failure_kind": self.failure_kind.value if self.failure_kind else None,
            "next_steps": list(self.next_steps),
            "details": {k: str(v) if isinstance(v, Path) else v for k, v in self.details.items()},
        }


@dataclass
class ScaffoldSummary:
    """Structured summary of a whole run, rendered at the end."""

    request: ProjectRequest
    stages: list[StageReport] = field(default_factory=list)
    exit_code: int = 0
    fatal_error: str | None = None

    def stage(self, name: str) -> StageReport:
        """Create, register and return a new stage report."""
        report = StageReport(name=name)
        self.stages.append(report)
        return report

    def get(self, name: str) -> StageReport | None:
        for report in self.stages:
            if report.name == name:
                return report
        return None

    @property
    def warnings(self) -> list[StageReport]:
        """Stages that were attempted but did not succeed."""
        return [s for s in self.stages if s.attempted and not s.succeeded]

    @property
    def next_steps(self) -> list[str]:
        return [step for s in self.stages for step in s.next_steps]

    def to_dict(self) -> dict[str, Any]:
        return {
            "request": self.request.model_dump(mode="json"),
            "project_dir": str(self.request.project_dir),
            "exit_code": self.exit_code,
            "fatal_error": self.fatal_error,
            "stages": [s.to_dict() for s in self.stages],
            "next_steps": self.next_steps,
        }
