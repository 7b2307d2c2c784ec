"""Engine installation discovery.

Scans candidate root directories for version-named subdirectories that
contain the expected executable, then picks one.  Selection orders version
directory names lexicographically, which matches release order for the
layouts we probe (``2022.3.0f1``, ``UE_5.3``) but not for multi-digit
components such as ``2022.3.10f1`` vs ``2022.3.9f1``.  Callers needing real
semantic ordering pass ``sort_key``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from engine_scaffold.config import ToolchainProfile


@dataclass(frozen=True)
class ToolchainCandidate:
    """A verified engine installation."""

    version: str
    executable_path: Path
    install_dir: Path


@dataclass(frozen=True)
class NotFound:
    """No verified installation under any of the searched roots."""

    searched_roots: tuple[Path, ...]
    version_hint: str | None = None

    def describe(self) -> str:
        roots = ", ".join(str(r) for r in self.searched_roots) or "(none)"
        return f"No installation found under: {roots}"


@dataclass(frozen=True)
class LocateResult:
    """A selected candidate plus how it was chosen."""

    candidate: ToolchainCandidate
    available: tuple[ToolchainCandidate, ...]
    hint_matched: bool | None


class ToolchainLocator:
    """Finds installations described by a ``ToolchainProfile``.

    Only reads the filesystem; unreadable roots are skipped.
    """

    def __init__(
        self,
        profile: ToolchainProfile,
        sort_key: Callable[[str], object] | None = None,
    ) -> None:
        self.profile = profile
        self._version_re = re.compile(profile.version_pattern)
        self._sort_key = sort_key or (lambda version: version)

    def discover(self, roots: Iterable[Path]) -> list[ToolchainCandidate]:
        """Return every verified candidate, newest first."""
        found: dict[str, ToolchainCandidate] = {}

        for root in roots:
            root = Path(root)
            if not root.is_dir():
                continue
            try:
                entries = list(root.iterdir())
            except OSError:
                continue

            for entry in entries:
                if not entry.is_dir() or not self._version_re.match(entry.name):
                    continue
                executable = self._find_executable(entry)
                # The first root wins for duplicate versions.
                if executable is not None and entry.name not in found:
                    found[entry.name] = ToolchainCandidate(
                        version=entry.name,
                        executable_path=executable,
                        install_dir=entry,
                    )

        return sorted(found.values(), key=lambda c: self._sort_key(c.version), reverse=True)

    def locate(
        self, roots: Iterable[Path], version_hint: str | None = None
    ) -> LocateResult | NotFound:
        """Select one installation.

        An exact match on *version_hint* wins, then the newest substring
        match, then the newest installation overall.
        """
        roots = [Path(r) for r in roots]
        candidates = self.discover(roots)
        if not candidates:
            return NotFound(searched_roots=tuple(roots), version_hint=version_hint)

        available = tuple(candidates)
        if version_hint:
            for candidate in candidates:
                if candidate.version == version_hint:
                    return LocateResult(candidate, available, hint_matched=True)
            for candidate in candidates:
                if version_hint in candidate.version:
                    return LocateResult(candidate, available, hint_matched=True)
            return LocateResult(candidates[0], available, hint_matched=False)

        return LocateResult(candidates[0], available, hint_matched=None)

    def _find_executable(self, install_dir: Path) -> Path | None:
        for relpath in self.profile.executable_relpaths:
            path = install_dir / relpath
            if path.is_file():
                return path
        return None
