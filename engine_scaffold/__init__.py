"""Engine Scaffold -- Unity package and Unreal plugin project skeletons.

Key entry points:
    ScaffoldPipeline - Runs one request through every stage
    ProjectRequest   - Validated description of what to scaffold
    Config           - Typed configuration (``Config.from_env()``)
"""

from .config import Config, ScaffoldContext
from .models import FailureKind, GitMode, ProjectRequest, ScaffoldSummary, TemplateKind
from .pipeline import ScaffoldPipeline, main

__version__ = "0.1.0"

__all__ = [
    "Config",
    "FailureKind",
    "GitMode",
    "ProjectRequest",
    "ScaffoldContext",
    "ScaffoldPipeline",
    "ScaffoldSummary",
    "TemplateKind",
    "main",
]
