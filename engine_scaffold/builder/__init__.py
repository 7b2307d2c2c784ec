"""Engine Scaffold builder module.

Runs the external engine tooling after the skeleton is on disk.

Key classes:
    ProcessInvoker          - Subprocess spawning with captured output and timeouts
    await_evidence          - Deadline-bounded filesystem polling
    EngineProjectGenerator  - Unity / Unreal project generation
"""

from .generation import EngineProjectGenerator, GenerationOutcome, unity_evidence_path
from .process import (
    ExternalInvocation,
    InvocationResult,
    ProcessInvoker,
    ProcessStartError,
    RunningProcess,
)
from .waiter import WaitOutcome, await_evidence, paths_exist

__all__ = [
    # Process management
    "ProcessInvoker",
    "ExternalInvocation",
    "InvocationResult",
    "ProcessStartError",
    "RunningProcess",
    # Completion polling
    "WaitOutcome",
    "await_evidence",
    "paths_exist",
    # Engine generation
    "EngineProjectGenerator",
    "GenerationOutcome",
    "unity_evidence_path",
]
