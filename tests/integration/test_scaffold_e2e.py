"""End-to-end scaffolding runs.

These tests run the real pipeline against fake engine installations whose
"executables" are small Python scripts, and against a real ``git`` binary
when one is available.  GitHub is never contacted.
"""

from __future__ import annotations

import shutil
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from engine_scaffold.config import GitConfig
from engine_scaffold.models import FailureKind, GitMode, TemplateKind
from engine_scaffold.pipeline import EXIT_OK, ScaffoldPipeline
from engine_scaffold.vcs import RepoBootstrapper

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="fake executables use a shebang")
needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fake_engine(path: Path, body: str) -> Path:
    """Write an executable Python script standing in for an engine binary."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body), encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


FAKE_UNITY = """
    import pathlib, sys
    target = pathlib.Path(sys.argv[sys.argv.index("-createProject") + 1])
    settings = target / "ProjectSettings"
    settings.mkdir(parents=True, exist_ok=True)
    (settings / "ProjectVersion.txt").write_text("m_EditorVersion: 2022.3.10f1\\n")
    print("Project created")
"""

HANGING_UNITY = """
    import time
    time.sleep(120)
"""

FAILING_UBT = """
    import sys
    sys.stderr.write("ERROR: UnrealBuildTool failed to find project\\n")
    sys.exit(3)
"""

GOOD_UBT = """
    import pathlib, sys
    project = next(a.split("=", 1)[1] for a in sys.argv if a.startswith("-project="))
    pathlib.Path(project).with_suffix(".sln").write_text("solution")
"""


def _unity_install(tmp_path: Path, body: str) -> Path:
    root = tmp_path / "Unity" / "Hub" / "Editor"
    _fake_engine(root / "2022.3.10f1" / "Editor" / "Unity", body)
    return root


def _unreal_install(tmp_path: Path, body: str) -> Path:
    root = tmp_path / "Epic Games"
    _fake_engine(
        root / "UE_5.3" / "Engine" / "Binaries" / "DotNET" / "UnrealBuildTool" / "UnrealBuildTool",
        body,
    )
    return root


# ---------------------------------------------------------------------------
# Engine generation
# ---------------------------------------------------------------------------


@pytest.mark.integration
@posix_only
class TestGenerationEndToEnd:
    async def test_unity_creates_project(self, scaffold_config, make_context, make_request, tmp_path: Path):
        context = make_context(unity_roots=[_unity_install(tmp_path, FAKE_UNITY)])
        request = make_request(run_generation=True)

        summary = await ScaffoldPipeline(scaffold_config, context).run(request)

        assert summary.exit_code == EXIT_OK
        assert summary.get("generation").succeeded
        assert (request.project_dir / "ProjectSettings" / "ProjectVersion.txt").is_file()
        assert (request.project_dir / "README.md").is_file()

    async def test_hanging_unity_times_out(self, scaffold_config, make_context, make_request, tmp_path: Path):
        config = scaffold_config.model_copy(
            update={"generation": scaffold_config.generation.model_copy(update={"unity_timeout": 1.0})}
        )
        context = make_context(unity_roots=[_unity_install(tmp_path, HANGING_UNITY)])

        summary = await ScaffoldPipeline(config, context).run(make_request(run_generation=True))

        generation = summary.get("generation")
        assert generation.failure_kind is FailureKind.EXTERNAL_PROCESS_TIMEOUT
        assert summary.exit_code == EXIT_OK
        assert generation.next_steps[0].startswith("Run manually:")

    async def test_unreal_generates_project_files(
        self, scaffold_config, make_context, make_request, tmp_path: Path
    ):
        context = make_context(unreal_roots=[_unreal_install(tmp_path, GOOD_UBT)])
        request = make_request(template_kind=TemplateKind.UNREAL, run_generation=True)

        summary = await ScaffoldPipeline(scaffold_config, context).run(request)

        assert summary.get("generation").succeeded
        assert (request.project_dir / "Foo.sln").is_file()

    async def test_unreal_failure_reported(self, scaffold_config, make_context, make_request, tmp_path: Path):
        context = make_context(unreal_roots=[_unreal_install(tmp_path, FAILING_UBT)])
        request = make_request(template_kind=TemplateKind.UNREAL, run_generation=True)

        summary = await ScaffoldPipeline(scaffold_config, context).run(request)

        generation = summary.get("generation")
        assert generation.failure_kind is FailureKind.EXTERNAL_PROCESS_NON_ZERO_EXIT
        assert "exited with code 3" in generation.reason
        assert "failed to find project" in generation.reason
        assert summary.exit_code == EXIT_OK
        assert (request.project_dir / "Plugins" / "Foo" / "Foo.uplugin").is_file()


# ---------------------------------------------------------------------------
# Repository bootstrap with real git
# ---------------------------------------------------------------------------


@pytest.mark.integration
@needs_git
class TestRepositoryEndToEnd:
    async def test_local_mode_initializes_repository(
        self, scaffold_config, make_context, make_request, unity_root: Path
    ):
        context = make_context(unity_roots=[unity_root])
        request = make_request(git_mode=GitMode.LOCAL)

        summary = await ScaffoldPipeline(scaffold_config, context).run(request)

        repository = summary.get("repository")
        assert repository.succeeded
        assert repository.details["state"] == "initialized"
        assert (request.project_dir / ".git").is_dir()
        assert summary.exit_code == EXIT_OK

    async def test_github_mode_without_gh_halts_after_init(
        self, scaffold_config, make_context, make_request, unity_root: Path
    ):
        git_config = GitConfig(remote_cli="gh-not-installed-for-tests")
        config = scaffold_config.model_copy(update={"git": git_config})
        context = make_context(unity_roots=[unity_root])
        request = make_request(git_mode=GitMode.GITHUB)

        summary = await ScaffoldPipeline(
            config, context, bootstrapper=RepoBootstrapper(git_config)
        ).run(request)

        repository = summary.get("repository")
        assert repository.failure_kind is FailureKind.REMOTE_HOSTING_UNAVAILABLE
        assert repository.details["state"] == "initialized"
        assert (request.project_dir / ".git").is_dir()
        assert any("auth login" in step for step in summary.next_steps)
        assert summary.exit_code == EXIT_OK
