"""Static file tables for each template kind.

Output paths are themselves rendered, so they may reference any
substitution (``{{ PROJECT_NAME }}`` and friends).
"""

from __future__ import annotations

from dataclasses import dataclass

from engine_scaffold.models import TemplateKind


@dataclass(frozen=True)
class FileSpec:
    """One file of a skeleton: where it goes and which template fills it."""

    path: str
    template_id: str


SKELETON_MANIFEST: dict[TemplateKind, tuple[FileSpec, ...]] = {
    TemplateKind.UNITY: (
        FileSpec("Packages/{{ PACKAGE_ID }}/package.json", "unity/package.json.j2"),
        FileSpec(
            "Packages/{{ PACKAGE_ID }}/Runtime/{{ ASSEMBLY_NAME }}.asmdef",
            "unity/Runtime.asmdef.j2",
        ),
        FileSpec(
            "Packages/{{ PACKAGE_ID }}/Runtime/I{{ PROJECT_NAME }}Service.cs",
            "unity/IService.cs.j2",
        ),
        FileSpec(
            "Packages/{{ PACKAGE_ID }}/Runtime/{{ PROJECT_NAME }}Service.cs",
            "unity/Service.cs.j2",
        ),
        FileSpec(".gitignore", "unity/gitignore.j2"),
        FileSpec("README.md", "common/README.md.j2"),
    ),
    TemplateKind.UNREAL: (
        FileSpec("{{ PROJECT_NAME }}.uproject", "unreal/Host.uproject.j2"),
        FileSpec(
            "Plugins/{{ PROJECT_NAME }}/{{ PROJECT_NAME }}.uplugin",
            "unreal/Plugin.uplugin.j2",
        ),
        FileSpec(
            "Plugins/{{ PROJECT_NAME }}/Source/{{ PROJECT_NAME }}/{{ PROJECT_NAME }}.Build.cs",
            "unreal/Module.Build.cs.j2",
        ),
        FileSpec(
            "Plugins/{{ PROJECT_NAME }}/Source/{{ PROJECT_NAME }}/Public/{{ PROJECT_NAME }}.h",
            "unreal/Module.h.j2",
        ),
        FileSpec(
            "Plugins/{{ PROJECT_NAME }}/Source/{{ PROJECT_NAME }}/Private/{{ PROJECT_NAME }}.cpp",
            "unreal/Module.cpp.j2",
        ),
        FileSpec(".gitignore", "unreal/gitignore.j2"),
        FileSpec("README.md", "common/README.md.j2"),
    ),
}


def manifest_for(kind: TemplateKind) -> tuple[FileSpec, ...]:
    """Return the static file table for *kind*."""
    return SKELETON_MANIFEST[kind]
