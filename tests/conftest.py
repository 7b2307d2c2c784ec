"""Shared pytest fixtures for the Engine Scaffold test suite.

Provides reusable fixtures for:
- Fake Unity / Unreal installations on disk
- Sample project requests
- A configuration that never probes the real machine
- Mock subprocess helpers
"""

from __future__ import annotations

import stat
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from engine_scaffold.config import (
    Config,
    GenerationConfig,
    ScaffoldContext,
    unity_profile,
    unreal_profile,
)
from engine_scaffold.models import GitMode, ProjectRequest, TemplateKind


# ---------------------------------------------------------------------------
# Fake toolchain installs
# ---------------------------------------------------------------------------

def _touch_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


@pytest.fixture
def make_install() -> Callable[..., Path]:
    """Factory that lays out a fake engine installation.

    Usage:
        def test_locate(make_install, tmp_path):
            exe = make_install(tmp_path / "Editor", TemplateKind.UNITY, "2022.3.1f1")
    """
    def factory(root: Path, kind: TemplateKind, version: str, relpath: str | None = None) -> Path:
        profile = unity_profile() if kind is TemplateKind.UNITY else unreal_profile()
        return _touch_executable(root / version / (relpath or profile.executable_relpaths[-1]))

    return factory


@pytest.fixture
def unity_root(tmp_path: Path, make_install) -> Path:
    """A Unity Hub editor root with three installed versions."""
    root = tmp_path / "Unity" / "Hub" / "Editor"
    for version in ("2021.3", "2022.3", "2023.1"):
        make_install(root, TemplateKind.UNITY, version)
    return root


@pytest.fixture
def unreal_root(tmp_path: Path, make_install) -> Path:
    """An Epic Games root with two installed engine versions."""
    root = tmp_path / "Epic Games"
    for version in ("UE_5.2", "UE_5.3"):
        make_install(root, TemplateKind.UNREAL, version)
    return root


# ---------------------------------------------------------------------------
# Configuration & context
# ---------------------------------------------------------------------------

@pytest.fixture
def scaffold_config() -> Config:
    """Config whose profiles search no built-in roots and time out quickly."""
    config = Config()
    return config.model_copy(
        update={
            "unity": config.unity.model_copy(update={"roots": []}),
            "unreal": config.unreal.model_copy(update={"roots": []}),
            "generation": GenerationConfig(
                unity_timeout=5.0, unreal_timeout=5.0, poll_interval=0.05, exit_grace=1.0
            ),
        }
    )


@pytest.fixture
def make_context(tmp_path: Path) -> Callable[..., ScaffoldContext]:
    """Factory for a ``ScaffoldContext`` rooted in the temp directory."""
    def factory(
        unity_roots: list[Path] | None = None,
        unreal_roots: list[Path] | None = None,
        workspace: Path | None = None,
    ) -> ScaffoldContext:
        return ScaffoldContext(
            cwd=tmp_path,
            workspace_root=workspace or tmp_path,
            extra_roots={
                TemplateKind.UNITY: list(unity_roots or []),
                TemplateKind.UNREAL: list(unreal_roots or []),
            },
        )

    return factory


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@pytest.fixture
def projects_root(tmp_path: Path) -> Path:
    """Directory new projects are created in."""
    root = tmp_path / "projects"
    root.mkdir()
    return root


@pytest.fixture
def make_request(projects_root: Path) -> Callable[..., ProjectRequest]:
    """Factory for ``ProjectRequest`` objects with sensible defaults."""
    def factory(**overrides: Any) -> ProjectRequest:
        values: dict[str, Any] = {
            "name": "Foo",
            "root_path": projects_root,
            "template_kind": TemplateKind.UNITY,
            "git_mode": GitMode.SKIP,
            "run_generation": False,
        }
        values.update(overrides)
        return ProjectRequest(**values)

    return factory


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
