"""Unit tests for engine installation discovery (engine_scaffold.toolchain.locator).

Tests cover:
- discover() ordering, filtering and duplicate handling
- locate() selection: newest, exact hint, partial hint, unmatched hint
- NotFound for missing / empty / unusable roots
"""

from __future__ import annotations

from pathlib import Path

import pytest

from engine_scaffold.config import unity_profile, unreal_profile
from engine_scaffold.models import TemplateKind
from engine_scaffold.toolchain import LocateResult, NotFound, ToolchainLocator


@pytest.fixture
def unity_locator() -> ToolchainLocator:
    return ToolchainLocator(unity_profile())


@pytest.fixture
def unreal_locator() -> ToolchainLocator:
    return ToolchainLocator(unreal_profile())


# ---------------------------------------------------------------------------
# discover
# ---------------------------------------------------------------------------


class TestDiscover:
    @pytest.mark.unit
    def test_newest_first(self, unity_locator: ToolchainLocator, unity_root: Path):
        versions = [c.version for c in unity_locator.discover([unity_root])]
        assert versions == ["2023.1", "2022.3", "2021.3"]

    @pytest.mark.unit
    def test_candidate_paths(self, unity_locator: ToolchainLocator, unity_root: Path):
        newest = unity_locator.discover([unity_root])[0]
        assert newest.install_dir == unity_root / "2023.1"
        assert newest.executable_path == unity_root / "2023.1" / "Editor" / "Unity"
        assert newest.executable_path.is_file()

    @pytest.mark.unit
    def test_directories_without_executable_ignored(
        self, unity_locator: ToolchainLocator, unity_root: Path
    ):
        (unity_root / "2024.1" / "Editor").mkdir(parents=True)
        versions = [c.version for c in unity_locator.discover([unity_root])]
        assert "2024.1" not in versions

    @pytest.mark.unit
    def test_non_version_directories_ignored(
        self, unity_locator: ToolchainLocator, unity_root: Path, make_install
    ):
        make_install(unity_root, TemplateKind.UNITY, "latest")
        (unity_root / "notes.txt").write_text("x", encoding="utf-8")
        versions = [c.version for c in unity_locator.discover([unity_root])]
        assert versions == ["2023.1", "2022.3", "2021.3"]

    @pytest.mark.unit
    def test_alternate_executable_layout(
        self, unity_locator: ToolchainLocator, tmp_path: Path, make_install
    ):
        root = tmp_path / "Applications"
        make_install(root, TemplateKind.UNITY, "2022.3.5f1", relpath="Unity.app/Contents/MacOS/Unity")
        (candidate,) = unity_locator.discover([root])
        assert candidate.executable_path.name == "Unity"
        assert "Unity.app" in candidate.executable_path.parts

    @pytest.mark.unit
    def test_first_root_wins_for_duplicates(
        self, unreal_locator: ToolchainLocator, tmp_path: Path, make_install
    ):
        first, second = tmp_path / "first", tmp_path / "second"
        make_install(first, TemplateKind.UNREAL, "UE_5.3")
        make_install(second, TemplateKind.UNREAL, "UE_5.3")
        make_install(second, TemplateKind.UNREAL, "UE_5.1")

        candidates = unreal_locator.discover([first, second])
        assert [c.version for c in candidates] == ["UE_5.3", "UE_5.1"]
        assert candidates[0].install_dir == first / "UE_5.3"

    @pytest.mark.unit
    def test_missing_roots_skipped(self, unreal_locator: ToolchainLocator, unreal_root: Path, tmp_path: Path):
        candidates = unreal_locator.discover([tmp_path / "nope", unreal_root])
        assert [c.version for c in candidates] == ["UE_5.3", "UE_5.2"]

    @pytest.mark.unit
    def test_custom_sort_key(self, tmp_path: Path, make_install):
        root = tmp_path / "Editor"
        for version in ("2022.3.9f1", "2022.3.10f1"):
            make_install(root, TemplateKind.UNITY, version)

        def numeric(version: str):
            return tuple(int(part) for part in version.replace("f", ".").split("."))

        lexical = ToolchainLocator(unity_profile()).discover([root])
        semantic = ToolchainLocator(unity_profile(), sort_key=numeric).discover([root])
        assert lexical[0].version == "2022.3.9f1"
        assert semantic[0].version == "2022.3.10f1"


# ---------------------------------------------------------------------------
# locate
# ---------------------------------------------------------------------------


class TestLocate:
    @pytest.mark.unit
    def test_no_hint_picks_newest(self, unity_locator: ToolchainLocator, unity_root: Path):
        result = unity_locator.locate([unity_root])
        assert isinstance(result, LocateResult)
        assert result.candidate.version == "2023.1"
        assert result.hint_matched is None
        assert len(result.available) == 3

    @pytest.mark.unit
    def test_partial_hint(self, unity_locator: ToolchainLocator, unity_root: Path):
        result = unity_locator.locate([unity_root], "2022")
        assert result.candidate.version == "2022.3"
        assert result.hint_matched is True

    @pytest.mark.unit
    def test_exact_hint_beats_newer_substring_match(
        self, unreal_locator: ToolchainLocator, tmp_path: Path, make_install
    ):
        root = tmp_path / "Epic Games"
        for version in ("UE_5.1", "UE_5.10"):
            make_install(root, TemplateKind.UNREAL, version)
        result = unreal_locator.locate([root], "UE_5.1")
        assert result.candidate.version == "UE_5.1"

    @pytest.mark.unit
    def test_partial_hint_picks_newest_match(self, unreal_locator: ToolchainLocator, unreal_root: Path):
        result = unreal_locator.locate([unreal_root], "5.")
        assert result.candidate.version == "UE_5.3"

    @pytest.mark.unit
    def test_unmatched_hint_falls_back_to_newest(
        self, unity_locator: ToolchainLocator, unity_root: Path
    ):
        result = unity_locator.locate([unity_root], "2019")
        assert result.candidate.version == "2023.1"
        assert result.hint_matched is False

    @pytest.mark.unit
    def test_not_found_for_empty_root(self, unity_locator: ToolchainLocator, tmp_path: Path):
        empty = tmp_path / "empty"
        empty.mkdir()
        result = unity_locator.locate([empty, tmp_path / "missing"], "2022")
        assert isinstance(result, NotFound)
        assert result.searched_roots == (empty, tmp_path / "missing")
        assert result.version_hint == "2022"
        assert str(empty) in result.describe()

    @pytest.mark.unit
    def test_not_found_without_roots(self, unity_locator: ToolchainLocator):
        result = unity_locator.locate([])
        assert isinstance(result, NotFound)
        assert "(none)" in result.describe()
