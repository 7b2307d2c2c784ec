"""Engine installation discovery."""

from .locator import LocateResult, NotFound, ToolchainCandidate, ToolchainLocator

__all__ = [
    "LocateResult",
    "NotFound",
    "ToolchainCandidate",
    "ToolchainLocator",
]
