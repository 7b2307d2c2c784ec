"""Engine-side project generation.

Unity creates its project asynchronously, so the editor is launched detached
and the pipeline polls for ``ProjectSettings/ProjectVersion.txt``.
UnrealBuildTool reports through its exit code, so it is invoked
synchronously.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from engine_scaffold.config import GenerationConfig
from engine_scaffold.models import FailureKind, ProjectRequest, TemplateKind
from engine_scaffold.toolchain import ToolchainCandidate
from engine_scaffold.utils import console, tail

from .process import ExternalInvocation, InvocationResult, ProcessInvoker
from .waiter import WaitOutcome, await_evidence, paths_exist


@dataclass
class GenerationOutcome:
    """What happened when the engine was asked to generate the project."""

    succeeded: bool
    invocation: ExternalInvocation
    result: InvocationResult | None = None
    failure_kind: FailureKind | None = None
    reason: str | None = None
    evidence: Path | None = None


def unity_evidence_path(project_dir: Path) -> Path:
    return project_dir / "ProjectSettings" / "ProjectVersion.txt"


class EngineProjectGenerator:
    """Runs the engine tooling that turns a skeleton into an openable project."""

    def __init__(
        self,
        config: GenerationConfig | None = None,
        invoker: ProcessInvoker | None = None,
    ) -> None:
        self.config = config or GenerationConfig()
        self.invoker = invoker or ProcessInvoker()

    # -- Command lines -----------------------------------------------------

    def unity_invocation(
        self, request: ProjectRequest, candidate: ToolchainCandidate
    ) -> ExternalInvocation:
        return ExternalInvocation(
            executable=candidate.executable_path,
            args=(
                "-batchmode",
                "-quit",
                "-createProject",
                str(request.project_dir.resolve()),
                "-logFile",
                "-",
            ),
            working_directory=request.project_dir,
            timeout_seconds=self.config.unity_timeout,
        )

    def unreal_invocation(
        self, request: ProjectRequest, candidate: ToolchainCandidate
    ) -> ExternalInvocation:
        uproject = (request.project_dir / f"{request.name}.uproject").resolve()
        return ExternalInvocation(
            executable=candidate.executable_path,
            args=(
                "-projectfiles",
                f"-project={uproject}",
                "-game",
                "-progress",
            ),
            working_directory=request.project_dir,
            timeout_seconds=self.config.unreal_timeout,
        )

    # -- Generation --------------------------------------------------------

    async def generate(
        self, request: ProjectRequest, candidate: ToolchainCandidate
    ) -> GenerationOutcome:
        """Generate engine project files for *request*.

        Raises:
            ProcessStartError: If the engine executable cannot be started.
        """
        if request.template_kind is TemplateKind.UNITY:
            return await self._generate_unity(request, candidate)
        return await self._generate_unreal(request, candidate)

    async def _generate_unity(
        self, request: ProjectRequest, candidate: ToolchainCandidate
    ) -> GenerationOutcome:
        spec = self.unity_invocation(request, candidate)
        evidence = unity_evidence_path(request.project_dir)
        have_evidence = paths_exist(evidence)

        console.print(f"  [cyan]Launching Unity {candidate.version}[/cyan] [dim]{spec.display()}[/dim]")
        running = await self.invoker.spawn(spec)

        outcome = await await_evidence(
            lambda: have_evidence() or running.returncode is not None,
            interval_seconds=self.config.poll_interval,
            timeout_seconds=spec.timeout_seconds,
        )

        if have_evidence():
            # Give the editor a chance to quit on its own before killing it.
            result = await running.wait(self.config.exit_grace)
            return GenerationOutcome(True, spec, result=result, evidence=evidence)

        if outcome is WaitOutcome.TIMED_OUT:
            result = await running.wait(0)
            return GenerationOutcome(
                False,
                spec,
                result=result,
                failure_kind=FailureKind.EXTERNAL_PROCESS_TIMEOUT,
                reason=(
                    f"Unity did not create {evidence.name} within "
                    f"{spec.timeout_seconds:.0f}s; the process was killed"
                ),
            )

        result = await running.wait(self.config.exit_grace)
        return GenerationOutcome(
            False,
            spec,
            result=result,
            failure_kind=FailureKind.EXTERNAL_PROCESS_NON_ZERO_EXIT,
            reason=_exit_reason("Unity", result, f"exited without creating {evidence.name}"),
        )

    async def _generate_unreal(
        self, request: ProjectRequest, candidate: ToolchainCandidate
    ) -> GenerationOutcome:
        spec = self.unreal_invocation(request, candidate)
        result = await self.invoker.invoke(spec)

        if result.timed_out:
            return GenerationOutcome(
                False,
                spec,
                result=result,
                failure_kind=FailureKind.EXTERNAL_PROCESS_TIMEOUT,
                reason=f"UnrealBuildTool timed out after {spec.timeout_seconds:.0f}s and was killed",
            )
        if result.exit_code != 0:
            return GenerationOutcome(
                False,
                spec,
                result=result,
                failure_kind=FailureKind.EXTERNAL_PROCESS_NON_ZERO_EXIT,
                reason=_exit_reason("UnrealBuildTool", result),
            )
        return GenerationOutcome(True, spec, result=result)


def _exit_reason(tool: str, result: InvocationResult, fallback: str = "failed") -> str:
    detail = tail(result.stderr, 5) or tail(result.stdout, 5)
    if result.exit_code:
        message = f"{tool} exited with code {result.exit_code}"
    else:
        message = f"{tool} {fallback}"
    return f"{message}\n{detail}" if detail else message
