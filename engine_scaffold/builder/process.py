"""External process management for engine tooling.

Spawns engine executables (Unity editor, UnrealBuildTool) with captured
output, enforces timeouts, and kills the whole process tree when a deadline
passes so no orphaned engine processes survive a run.
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

from engine_scaffold.utils import console


@dataclass(frozen=True)
class ExternalInvocation:
    """What to run, where, and for how long."""

    executable: Path
    args: tuple[str, ...] = ()
    working_directory: Path | None = None
    timeout_seconds: float = 600.0
    env: dict[str, str] = field(default_factory=dict)

    @property
    def command(self) -> list[str]:
        return [str(self.executable), *self.args]

    def display(self) -> str:
        return " ".join(self.command)


@dataclass
class InvocationResult:
    """Structured result of an external process run.

    ``exit_code`` is ``None`` when the process was killed on timeout.
    """

    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return not self.timed_out and self.exit_code == 0


class ProcessStartError(Exception):
    """Raised when an executable cannot be started at all."""

    def __init__(self, executable: Path | str, reason: str) -> None:
        self.executable = str(executable)
        self.reason = reason
        super().__init__(f"Cannot start '{executable}': {reason}")


class RunningProcess:
    """Handle to a spawned process whose output is being captured."""

    def __init__(self, process: asyncio.subprocess.Process, spec: ExternalInvocation) -> None:
        self.process = process
        self.spec = spec
        self.started_at = time.monotonic()
        # Drain pipes from the start so a chatty child never blocks on a full pipe.
        self._communicate = asyncio.ensure_future(process.communicate())

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    async def wait(self, timeout: float) -> InvocationResult:
        """Wait up to *timeout* seconds, killing the tree if it runs over."""
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                asyncio.shield(self._communicate), timeout=max(timeout, 0)
            )
        except asyncio.TimeoutError:
            await self.kill()
            stdout_bytes, stderr_bytes = await self._drain()
            return InvocationResult(
                exit_code=None,
                stdout=_decode(stdout_bytes),
                stderr=_decode(stderr_bytes),
                timed_out=True,
                duration_seconds=time.monotonic() - self.started_at,
            )

        return InvocationResult(
            exit_code=self.process.returncode,
            stdout=_decode(stdout_bytes),
            stderr=_decode(stderr_bytes),
            duration_seconds=time.monotonic() - self.started_at,
        )

    async def kill(self) -> None:
        """Forcibly terminate the process and all of its descendants."""
        # The group can outlive its leader, so signal it even after an exit.
        await _kill_tree(self.process)
        if self.process.returncode is not None:
            return
        try:
            await asyncio.wait_for(self.process.wait(), timeout=10.0)
        except asyncio.TimeoutError:
            console.print(f"[red]Process {self.pid} did not exit after kill[/red]")

    async def _drain(self) -> tuple[bytes, bytes]:
        try:
            return await asyncio.wait_for(self._communicate, timeout=10.0)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            return b"", b""


class ProcessInvoker:
    """Launches external executables with captured output.

    Non-zero exit codes and timeouts are reported in the result; only a
    failure to start the process raises.
    """

    async def spawn(self, spec: ExternalInvocation) -> RunningProcess:
        """Start *spec* and return immediately.

        The child is placed in its own process group / session so the whole
        tree can be killed later.

        Raises:
            ProcessStartError: If the executable is missing or not runnable.
        """
        merged_env = {**os.environ, **spec.env} if spec.env else None
        kwargs: dict[str, object] = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = _windows_group_flag()
        else:
            kwargs["start_new_session"] = True

        try:
            process = await asyncio.create_subprocess_exec(
                *spec.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(spec.working_directory) if spec.working_directory else None,
                env=merged_env,
                **kwargs,
            )
        except FileNotFoundError as exc:
            raise ProcessStartError(spec.executable, "executable not found") from exc
        except PermissionError as exc:
            raise ProcessStartError(spec.executable, "permission denied") from exc
        except OSError as exc:
            raise ProcessStartError(spec.executable, str(exc)) from exc

        return RunningProcess(process, spec)

    async def invoke(self, spec: ExternalInvocation) -> InvocationResult:
        """Run *spec* to completion or until its timeout elapses."""
        console.print(f"  [cyan]Running[/cyan] [dim]{spec.display()}[/dim]")
        running = await self.spawn(spec)
        result = await running.wait(spec.timeout_seconds)
        if result.timed_out:
            console.print(
                f"  [red]Process timed out after {spec.timeout_seconds:.0f}s and was killed[/red]"
            )
        return result


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


def _windows_group_flag() -> int:
    import subprocess

    return subprocess.CREATE_NEW_PROCESS_GROUP


async def _kill_tree(process: asyncio.subprocess.Process) -> None:
    if sys.platform == "win32":
        try:
            killer = await asyncio.create_subprocess_exec(
                "taskkill", "/F", "/T", "/PID", str(process.pid),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            await killer.wait()
        except OSError:
            pass
        if process.returncode is None:
            process.kill()
        return

    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError:
        if process.returncode is None:
            process.kill()
