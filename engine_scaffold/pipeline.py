"""Engine Scaffold pipeline orchestrator.

Drives a scaffolding run through five stages:

Stage 1: GUARD      -- Refuse to touch a non-empty target directory.
Stage 2: TOOLCHAIN  -- Locate an installed Unity editor / UnrealBuildTool.
Stage 3: SKELETON   -- Render and write the static file set.
Stage 4: GENERATION -- Let the engine generate its project files.
Stage 5: REPOSITORY -- Initialise git and optionally create / push a GitHub remote.

Only the overwrite guard, template defects, an unwritable filesystem and an
engine executable that cannot be started end the run early.  Everything
else is recorded in the summary and the run carries on.

Usage::

    python -m engine_scaffold --kind unreal --name MyPlugin --git github
    engine-scaffold --kind unity --version 2022.3 --git local
"""

from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path

from pydantic import ValidationError
from rich.panel import Panel
from rich.table import Table

from engine_scaffold.builder import EngineProjectGenerator, ProcessStartError
from engine_scaffold.config import Config, ScaffoldContext
from engine_scaffold.models import (
    FailureKind,
    GitMode,
    ProjectRequest,
    ScaffoldSummary,
    TemplateKind,
)
from engine_scaffold.scaffolder import (
    DestructiveOverwriteRefused,
    FilesystemUnwritable,
    SkeletonBuilder,
    TemplateRenderer,
    UnresolvedPlaceholder,
)
from engine_scaffold.toolchain import NotFound, ToolchainCandidate, ToolchainLocator
from engine_scaffold.utils import (
    console,
    format_duration,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
    to_pascal,
)
from engine_scaffold.vcs import RepoBootstrapper

EXIT_OK = 0
EXIT_FAILURE = 1

_INSTALL_HINTS: dict[TemplateKind, tuple[str, str]] = {
    TemplateKind.UNITY: ("Install a Unity editor through Unity Hub", "SCAFFOLD_UNITY_ROOTS"),
    TemplateKind.UNREAL: ("Install Unreal Engine through the Epic Games Launcher", "SCAFFOLD_UNREAL_ROOTS"),
}


def _manual_generation_step(request: ProjectRequest) -> str:
    """Next step for generating engine files once an engine is installed."""
    if request.template_kind is TemplateKind.UNITY:
        command = f"Unity -batchmode -quit -createProject {request.project_dir} -logFile -"
    else:
        uproject = request.project_dir / f"{request.name}.uproject"
        command = f"UnrealBuildTool -projectfiles -project={uproject} -game -progress"
    return f"Then generate the engine project files manually: {command}"


class ScaffoldPipeline:
    """Runs one scaffolding request end to end.

    Attributes:
        config: Global configuration.
        context: Ambient process state collected at start-up.
    """

    def __init__(
        self,
        config: Config,
        context: ScaffoldContext,
        *,
        builder: SkeletonBuilder | None = None,
        generator: EngineProjectGenerator | None = None,
        bootstrapper: RepoBootstrapper | None = None,
    ) -> None:
        self.config = config
        self.context = context
        self.builder = builder or SkeletonBuilder(
            TemplateRenderer(fill_later=config.fill_later_tokens)
        )
        self.generator = generator or EngineProjectGenerator(config.generation)
        self.bootstrapper = bootstrapper or RepoBootstrapper(config.git)

    async def run(self, request: ProjectRequest, report_path: Path | None = None) -> ScaffoldSummary:
        """Execute every stage for *request* and return the summary."""
        started = time.monotonic()
        summary = ScaffoldSummary(request=request)

        console.print(
            Panel(
                f"[bold bright_cyan]Engine Scaffold[/bold bright_cyan]\n"
                f"Project : {request.name} ({request.template_kind.value})\n"
                f"Target  : {request.project_dir}\n"
                f"Version : {request.version_hint or 'auto'}\n"
                f"Git     : {request.git_mode.value}",
                title="[bold]Scaffold Start[/bold]",
                border_style="bright_cyan",
            )
        )

        try:
            await self._run_stages(request, summary)
        except DestructiveOverwriteRefused as exc:
            self._abort(summary, "guard", FailureKind.DESTRUCTIVE_OVERWRITE_REFUSED, str(exc))
        except UnresolvedPlaceholder as exc:
            self._abort(summary, "skeleton", FailureKind.UNRESOLVED_PLACEHOLDER, str(exc))
        except FilesystemUnwritable as exc:
            self._abort(summary, "skeleton", FailureKind.FILESYSTEM_UNWRITABLE, str(exc))
        except ProcessStartError as exc:
            self._abort(summary, "generation", FailureKind.EXTERNAL_PROCESS_START_FAILED, str(exc))

        self._print_final_summary(summary, time.monotonic() - started)
        if report_path is not None:
            await save_json(summary.to_dict(), report_path)
            console.print(f"[dim]Report written to {report_path}[/dim]")
        return summary

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run_stages(self, request: ProjectRequest, summary: ScaffoldSummary) -> None:
        print_stage_header(1, "guard")
        guard = summary.stage("guard")
        existed_empty = self.builder.check_target(request.project_dir)
        guard.ok(existed_empty=existed_empty)
        console.print(f"  [green]+[/green] Target {request.project_dir} is free")

        print_stage_header(2, "toolchain")
        candidate = self._locate(request, summary)

        print_stage_header(3, "skeleton")
        written = await self._write_skeleton(request, candidate, summary)

        print_stage_header(4, "generation")
        await self._generate(request, candidate, written, summary)

        print_stage_header(5, "repository")
        await self._bootstrap_repository(request, summary)

    def _locate(self, request: ProjectRequest, summary: ScaffoldSummary) -> ToolchainCandidate | None:
        stage = summary.stage("toolchain")
        profile = self.config.profile_for(request.template_kind)
        roots = self.context.toolchain_roots(profile)
        found = ToolchainLocator(profile).locate(roots, request.version_hint)

        if isinstance(found, NotFound):
            if not request.run_generation:
                stage.skip(f"Not needed with --no-generate ({found.describe()})")
                console.print("  [dim]No engine installation; descriptors use the default version[/dim]")
                return None
            install_hint, env_var = _INSTALL_HINTS[request.template_kind]
            stage.fail(
                FailureKind.TOOLCHAIN_NOT_FOUND,
                found.describe(),
                f"{install_hint}, or add its install root to {env_var}",
                _manual_generation_step(request),
            )
            summary.exit_code = EXIT_FAILURE
            print_warning(f"  {found.describe()}")
            return None

        candidate = found.candidate
        stage.ok(
            version=candidate.version,
            executable=candidate.executable_path,
            available=[c.version for c in found.available],
        )
        if found.hint_matched is False:
            stage.details["note"] = (
                f"No installation matches '{request.version_hint}'; using {candidate.version}"
            )
            print_warning(f"  {stage.details['note']}")
        console.print(f"  [green]+[/green] Using {candidate.version} at {candidate.executable_path}")
        return candidate

    async def _write_skeleton(
        self,
        request: ProjectRequest,
        candidate: ToolchainCandidate | None,
        summary: ScaffoldSummary,
    ) -> bool:
        stage = summary.stage("skeleton")
        fallback = self.config.profile_for(request.template_kind).default_version
        skeleton = self.builder.build(request, candidate, fallback_version=fallback)
        result = await self.builder.write(skeleton)

        for path in result.written:
            console.print(f"  [green]+[/green] {path}")

        if result.failed:
            for path, reason in result.failed.items():
                print_error(f"  x {path}: {reason}")
            stage.fail(
                FailureKind.PARTIAL_WRITE_FAILURE,
                f"{len(result.failed)} of {len(skeleton.files)} file(s) could not be written",
                *(f"Create {request.project_dir / p} by hand" for p in result.failed),
                written=result.written,
                failed=result.failed,
            )
            return bool(result.written)

        stage.ok(files=len(result.written), project_dir=request.project_dir)
        return True

    async def _generate(
        self,
        request: ProjectRequest,
        candidate: ToolchainCandidate | None,
        written: bool,
        summary: ScaffoldSummary,
    ) -> None:
        stage = summary.stage("generation")
        if not request.run_generation:
            stage.skip("Disabled with --no-generate")
            console.print("  [dim]Engine project generation disabled[/dim]")
            return
        if candidate is None:
            stage.skip("No engine installation was located")
            console.print("  [dim]Skipped: no engine installation[/dim]")
            return
        if not written:
            stage.skip("Skeleton was not written")
            return

        outcome = await self.generator.generate(request, candidate)
        if outcome.succeeded:
            stage.ok(command=outcome.invocation.display())
            console.print("  [green]+[/green] Engine project files generated")
            return

        stage.fail(
            outcome.failure_kind or FailureKind.EXTERNAL_PROCESS_NON_ZERO_EXIT,
            outcome.reason or "Engine generation failed",
            f"Run manually: {outcome.invocation.display()}",
            command=outcome.invocation.display(),
        )
        print_warning(f"  {outcome.reason}")

    async def _bootstrap_repository(self, request: ProjectRequest, summary: ScaffoldSummary) -> None:
        stage = summary.stage("repository")
        if request.git_mode is GitMode.SKIP:
            stage.skip("Git mode is 'skip'")
            console.print("  [dim]Repository bootstrap skipped[/dim]")
            return

        result = await self.bootstrapper.bootstrap(
            request.project_dir,
            request.git_mode,
            request.name,
            private=not request.public_repo,
            description=request.description,
        )
        details = {
            "state": result.state.value,
            "initialized": result.initialized,
            "remote_created": result.remote_created,
            "committed": result.committed,
            "pushed": result.pushed,
        }
        if result.remote_url:
            details["remote_url"] = result.remote_url

        if result.completed:
            stage.ok(**details)
            return
        stage.fail(
            result.failure_kind or FailureKind.VERSION_CONTROL_STEP_FAILED,
            result.first_failure_reason or "Repository bootstrap incomplete",
            *result.next_steps,
            **details,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _abort(self, summary: ScaffoldSummary, stage_name: str, kind: FailureKind, reason: str) -> None:
        stage = summary.get(stage_name) or summary.stage(stage_name)
        stage.fail(kind, reason)
        summary.fatal_error = reason
        summary.exit_code = EXIT_FAILURE
        print_error(f"  {reason}")

    def _print_final_summary(self, summary: ScaffoldSummary, elapsed: float) -> None:
        table = Table(title="Scaffold Summary", show_header=True, header_style="bold cyan")
        table.add_column("Stage", style="bold")
        table.add_column("Attempted")
        table.add_column("Succeeded")
        table.add_column("Reason")

        for stage in summary.stages:
            ok = "[green]yes[/green]" if stage.succeeded else "[red]no[/red]"
            if not stage.attempted:
                ok = "[dim]-[/dim]"
            reason = stage.reason or ""
            if stage.failure_kind:
                reason = f"{stage.failure_kind.value}: {reason}"
            table.add_row(stage.name, "yes" if stage.attempted else "no", ok, reason.split("\n")[0])

        console.print()
        console.print(table)

        if summary.next_steps:
            console.print("[bold]Next steps:[/bold]")
            for step in summary.next_steps:
                console.print(f"  - {step}")
            console.print()

        duration = format_duration(elapsed)
        toolchain = summary.get("toolchain")
        print_summary_table(
            {
                "Project": summary.request.name,
                "Kind": summary.request.template_kind.value,
                "Directory": str(summary.request.project_dir),
                "Engine": str(toolchain.details.get("version", "not found")) if toolchain else "-",
                "Exit code": str(summary.exit_code),
                "Duration": duration,
            },
            title="Run Details",
        )
        if summary.exit_code == EXIT_OK:
            print_success(f"Scaffolded {summary.request.project_dir} in {duration}")
        else:
            print_error(f"Scaffold finished with errors after {duration}")


# ---------------------------------------------------------------------------
# Request resolution
# ---------------------------------------------------------------------------


def resolve_request(
    context: ScaffoldContext,
    config: Config,
    *,
    kind: str,
    name: str | None = None,
    root: str | None = None,
    version: str | None = None,
    git: str = "local",
    organization: str | None = None,
    description: str = "",
    public: bool = False,
    generate: bool = True,
) -> ProjectRequest:
    """Turn raw CLI values (including "auto") into a validated request.

    Raises:
        ValueError: If no project name can be derived.
        ValidationError: If a value fails model validation.
    """
    resolved_name = name
    if not resolved_name or resolved_name.lower() == "auto":
        resolved_name = to_pascal(context.workspace_root.name)
        if not resolved_name:
            raise ValueError(
                f"Cannot derive a project name from {context.workspace_root}; pass --name"
            )

    root_path = Path(root).expanduser() if root else context.workspace_root
    if not root_path.is_absolute():
        root_path = context.cwd / root_path

    return ProjectRequest(
        name=resolved_name,
        root_path=root_path,
        template_kind=TemplateKind(kind),
        version_hint=version,
        git_mode=GitMode(git),
        organization=organization or config.organization,
        description=description,
        public_repo=public,
        run_generation=generate,
    )


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``engine-scaffold`` / ``python -m engine_scaffold``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="engine-scaffold",
        description="Engine Scaffold -- create Unity package / Unreal plugin project skeletons",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  engine-scaffold --kind unreal --name MyPlugin --git github\n"
            "  engine-scaffold --kind unity --version 2022.3 --git local\n"
            "  engine-scaffold --kind unity --no-generate --git skip\n"
        ),
    )
    parser.add_argument("--kind", "-k", required=True, choices=[k.value for k in TemplateKind])
    parser.add_argument(
        "--name", "-n", default="auto",
        help="Project name (default: derived from the workspace directory)",
    )
    parser.add_argument(
        "--root", "-r", default=None,
        help="Directory the project folder is created in (default: workspace root)",
    )
    parser.add_argument(
        "--version", "-v", default="auto",
        help="Engine version to prefer, exact or partial (default: newest installed)",
    )
    parser.add_argument(
        "--git", "-g", default=GitMode.LOCAL.value, choices=[m.value for m in GitMode],
        help="Repository bootstrap mode (default: local)",
    )
    parser.add_argument("--org", default=None, help="Organisation segment for package ids")
    parser.add_argument("--description", "-d", default="", help="Short project description")
    parser.add_argument("--public", action="store_true", help="Create the GitHub repository as public")
    parser.add_argument(
        "--no-generate", dest="generate", action="store_false",
        help="Do not invoke the engine to generate project files",
    )
    parser.add_argument("--report", default=None, help="Write the run summary as JSON to this path")
    parser.add_argument("--config", default=None, help="Path to a saved JSON configuration")

    args = parser.parse_args(argv)

    context = ScaffoldContext.collect()
    try:
        if args.config:
            config = Config.load(Path(args.config))
        else:
            config = Config.from_env(platform=context.platform)
        request = resolve_request(
            context,
            config,
            kind=args.kind,
            name=args.name,
            root=args.root,
            version=args.version,
            git=args.git,
            organization=args.org,
            description=args.description,
            public=args.public,
            generate=args.generate,
        )
    except (ValidationError, ValueError, OSError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(EXIT_FAILURE)

    pipeline = ScaffoldPipeline(config, context)
    summary = asyncio.run(
        pipeline.run(request, report_path=Path(args.report) if args.report else None)
    )
    sys.exit(summary.exit_code)


if __name__ == "__main__":
    main()
