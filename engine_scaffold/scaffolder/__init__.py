"""Engine Scaffold scaffolder -- renders and writes project skeletons.

Quick usage::

    from engine_scaffold.scaffolder import SkeletonBuilder

    builder = SkeletonBuilder()
    skeleton = builder.build(request, candidate, fallback_version="UE_5.3")
    result = await builder.write(skeleton)
"""

from engine_scaffold.scaffolder.generator import (
    DestructiveOverwriteRefused,
    FilesystemUnwritable,
    Skeleton,
    SkeletonBuilder,
    SkeletonFile,
    SkeletonPathError,
    WriteResult,
    build_substitutions,
)
from engine_scaffold.scaffolder.manifest import SKELETON_MANIFEST, FileSpec, manifest_for
from engine_scaffold.scaffolder.templates import TemplateRenderer, UnresolvedPlaceholder

__all__ = [
    "DestructiveOverwriteRefused",
    "FileSpec",
    "FilesystemUnwritable",
    "SKELETON_MANIFEST",
    "Skeleton",
    "SkeletonBuilder",
    "SkeletonFile",
    "SkeletonPathError",
    "TemplateRenderer",
    "UnresolvedPlaceholder",
    "WriteResult",
    "build_substitutions",
    "manifest_for",
]
