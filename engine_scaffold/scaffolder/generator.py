"""Skeleton building and writing.

``SkeletonBuilder.build`` turns a ``ProjectRequest`` into a fully rendered
``Skeleton`` without touching the disk (other than the overwrite guard's
directory listing), so template defects surface before any write.
``SkeletonBuilder.write`` then materialises it, recording per-file success.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from engine_scaffold.models import ProjectRequest, TemplateKind
from engine_scaffold.toolchain import ToolchainCandidate

from .manifest import manifest_for
from .templates import TemplateRenderer

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DestructiveOverwriteRefused(Exception):
    """Raised when the target directory already exists and is not empty."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(
            f"Refusing to scaffold into {path}: it already exists and is not empty. "
            "Choose another name or remove the directory yourself."
        )


class FilesystemUnwritable(Exception):
    """Raised when nothing at all can be written under the target root."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write to {path}: {reason}")


class SkeletonPathError(ValueError):
    """Raised when a rendered skeleton path would land outside the project."""


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SkeletonFile:
    """A rendered file, addressed relative to the project directory."""

    relative_path: str
    template_id: str
    content: str


@dataclass
class Skeleton:
    """Everything needed to write one project, already rendered."""

    project_dir: Path
    kind: TemplateKind
    files: list[SkeletonFile]
    substitutions: dict[str, str]

    @property
    def relative_paths(self) -> list[str]:
        return [f.relative_path for f in self.files]


@dataclass
class WriteResult:
    """Which files made it to disk."""

    project_dir: Path
    written: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failed

    @property
    def partial(self) -> bool:
        return bool(self.written) and bool(self.failed)


# ---------------------------------------------------------------------------
# Substitutions
# ---------------------------------------------------------------------------


def short_version(version: str) -> str:
    """``2022.3.10f1`` -> ``2022.3``, ``UE_5.3`` -> ``5.3``."""
    match = re.search(r"(\d+\.\d+)", version)
    return match.group(1) if match else version


def build_substitutions(request: ProjectRequest, engine_version: str) -> dict[str, str]:
    """Placeholder name -> value for every template of a request."""
    return {
        "PROJECT_NAME": request.name,
        "PROJECT_NAME_UPPER": request.name.upper(),
        "PROJECT_SLUG": request.name_slug,
        "PACKAGE_ID": request.package_id,
        "ASSEMBLY_NAME": f"{request.name}.Runtime",
        "ORGANIZATION": request.organization,
        "DESCRIPTION": request.description,
        "TEMPLATE_KIND": request.template_kind.value,
        "ENGINE_VERSION": engine_version,
        "ENGINE_SHORT_VERSION": short_version(engine_version),
        "YEAR": str(datetime.now(timezone.utc).year),
    }


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class SkeletonBuilder:
    """Builds and writes project skeletons from the static manifest."""

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    # -- Guard -------------------------------------------------------------

    @staticmethod
    def check_target(project_dir: Path) -> bool:
        """Enforce the overwrite guard.

        Returns:
            ``True`` if *project_dir* exists and is empty, ``False`` if it
            does not exist.

        Raises:
            DestructiveOverwriteRefused: If it exists and is not an empty
                directory.
        """
        if not project_dir.exists():
            return False
        if not project_dir.is_dir():
            raise DestructiveOverwriteRefused(project_dir)
        if any(project_dir.iterdir()):
            raise DestructiveOverwriteRefused(project_dir)
        return True

    # -- Build -------------------------------------------------------------

    def build(
        self,
        request: ProjectRequest,
        candidate: ToolchainCandidate | None,
        fallback_version: str,
    ) -> Skeleton:
        """Render the skeleton for *request*.

        Args:
            request: The validated project request.
            candidate: Selected engine install, or ``None`` when none was found.
            fallback_version: Engine version written into descriptors when
                *candidate* is ``None``.

        Raises:
            DestructiveOverwriteRefused: If the project directory is non-empty.
            UnresolvedPlaceholder: If any template leaves a placeholder behind.
        """
        project_dir = request.project_dir
        self.check_target(project_dir)

        engine_version = candidate.version if candidate else fallback_version
        substitutions = build_substitutions(request, engine_version)

        files: list[SkeletonFile] = []
        for spec in manifest_for(request.template_kind):
            relative = self.renderer.render(spec.path, substitutions)
            _ensure_inside(project_dir, relative)
            content = self.renderer.render_file(spec.template_id, substitutions)
            files.append(SkeletonFile(relative, spec.template_id, content))

        return Skeleton(
            project_dir=project_dir,
            kind=request.template_kind,
            files=files,
            substitutions=substitutions,
        )

    # -- Write -------------------------------------------------------------

    async def write(self, skeleton: Skeleton) -> WriteResult:
        """Write every file of *skeleton*.

        An existing empty project directory is removed and recreated.  Every
        file is attempted; failures are collected rather than raised.

        Raises:
            DestructiveOverwriteRefused: If the directory became non-empty.
            FilesystemUnwritable: If the project directory cannot be created
                or no file could be written.
        """
        project_dir = skeleton.project_dir
        existed_empty = self.check_target(project_dir)

        try:
            if existed_empty:
                await asyncio.to_thread(project_dir.rmdir)
            await asyncio.to_thread(project_dir.mkdir, parents=True)
        except OSError as exc:
            raise FilesystemUnwritable(project_dir, str(exc)) from exc

        result = WriteResult(project_dir=project_dir)
        for skeleton_file in skeleton.files:
            target = project_dir / skeleton_file.relative_path
            try:
                await asyncio.to_thread(_write_file, target, skeleton_file.content)
            except OSError as exc:
                result.failed[skeleton_file.relative_path] = str(exc)
            else:
                result.written.append(skeleton_file.relative_path)

        if skeleton.files and not result.written:
            first_error = next(iter(result.failed.values()))
            raise FilesystemUnwritable(project_dir, first_error)

        return result


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_inside(project_dir: Path, relative: str) -> None:
    rel = PurePosixPath(relative)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise SkeletonPathError(f"Skeleton path escapes {project_dir}: {relative!r}")


def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
