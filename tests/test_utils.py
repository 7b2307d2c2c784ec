"""Unit tests for utility functions (engine_scaffold.utils).

Tests cover:
- run_command (success, failure, timeout, env vars, missing program)
- to_pascal and tail
- save_json (use tmp_path)
- format_duration
- STAGE_COLORS constants
- Rich output helpers (print_stage_header, print_summary_table, etc.)
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from engine_scaffold.utils import (
    STAGE_COLORS,
    format_duration,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
    save_json,
    tail,
    to_pascal,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command([sys.executable, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"
        assert stderr == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failing_command_returns_code_and_stderr(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"]
        )
        assert returncode == 3
        assert stderr == "bad"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_returns_minus_one(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.5
        )
        assert returncode == -1
        assert "timed out" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_env_is_merged(self):
        _, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['SCAFFOLD_TEST_VAR'])"],
            env={"SCAFFOLD_TEST_VAR": "merged"},
        )
        assert stdout == "merged"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cwd_is_respected(self, tmp_path: Path):
        _, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert Path(stdout).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_program_raises(self):
        with pytest.raises(FileNotFoundError):
            await run_command(["definitely-not-a-real-program-xyz"])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_output_decoded_and_stripped(self, mock_subprocess):
        proc = mock_subprocess(stdout="gh version 2.40.0\n", stderr="  warning \n", returncode=0)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            result = await run_command(["gh", "--version"], cwd=Path("/work"))
        assert result == (0, "gh version 2.40.0", "warning")
        assert spawn.await_args.args == ("gh", "--version")
        assert spawn.await_args.kwargs["cwd"] == str(Path("/work"))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_zero_returncode_passed_through(self, mock_subprocess):
        proc = mock_subprocess(stderr="fatal: not a git repository", returncode=128)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            returncode, stdout, stderr = await run_command(["git", "status"])
        assert returncode == 128
        assert stdout == ""
        assert stderr == "fatal: not a git repository"


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------


class TestToPascal:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("my-cool plugin", "MyCoolPlugin"),
            ("awesome_tools", "AwesomeTools"),
            ("MyPlugin", "MyPlugin"),
            ("2d_tools", "P2dTools"),
            ("  spaced  ", "Spaced"),
            ("---", ""),
        ],
    )
    def test_conversion(self, raw: str, expected: str):
        assert to_pascal(raw) == expected


class TestTail:
    @pytest.mark.unit
    def test_keeps_last_non_empty_lines(self):
        assert tail("a\n\nb\nc\n\n", lines=2) == "b\nc"

    @pytest.mark.unit
    def test_empty_text(self):
        assert tail("") == ""


# ---------------------------------------------------------------------------
# JSON output
# ---------------------------------------------------------------------------


class TestSaveJson:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_creates_parents_and_serialises_paths(self, tmp_path: Path):
        target = tmp_path / "reports" / "run.json"
        await save_json({"dir": tmp_path, "ok": True}, target)
        data = json.loads(target.read_text(encoding="utf-8"))
        assert data == {"dir": str(tmp_path), "ok": True}


# ---------------------------------------------------------------------------
# format_duration
# ---------------------------------------------------------------------------


class TestFormatDuration:
    @pytest.mark.unit
    def test_seconds(self):
        assert format_duration(3.7) == "3.7s"

    @pytest.mark.unit
    def test_minutes(self):
        assert format_duration(65.2) == "1m 5s"

    @pytest.mark.unit
    def test_hours(self):
        assert format_duration(3661.0) == "1h 1m 1s"

    @pytest.mark.unit
    def test_negative(self):
        assert format_duration(-1) == "0.0s"


# ---------------------------------------------------------------------------
# Rich output helpers (smoke tests - verify they don't raise)
# ---------------------------------------------------------------------------


class TestRichOutputHelpers:
    @pytest.mark.unit
    def test_stage_colors_cover_pipeline(self):
        for name in ("guard", "toolchain", "skeleton", "generation", "repository"):
            assert isinstance(STAGE_COLORS[name], str)

    @pytest.mark.unit
    def test_print_stage_header(self):
        print_stage_header(1, "guard")
        print_stage_header(9, "unknown")

    @pytest.mark.unit
    def test_print_summary_table(self):
        print_summary_table({"Key1": "Value1", "Key2": "Value2"}, title="Test Summary")

    @pytest.mark.unit
    def test_print_success(self):
        print_success("Scaffolded")

    @pytest.mark.unit
    def test_print_error(self):
        print_error("Something failed")

    @pytest.mark.unit
    def test_print_warning(self):
        print_warning("Check your config")
