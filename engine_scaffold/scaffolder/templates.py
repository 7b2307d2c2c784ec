"""Jinja2 template rendering for project scaffolding.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``engine_scaffold/scaffolder/templates/`` directory and renders them with a
substitution mapping.  Rendering is strict in two layers:

* Jinja2 expressions (``{{ PROJECT_NAME }}``) are rendered with
  ``StrictUndefined``, so referencing an unknown name fails.
* ``[TOKEN]`` markers left in the output (from templates or from
  user-supplied values such as a description) are replaced from the same
  mapping in a single pass.  Any marker that is still present afterwards and
  is not on the fill-later whitelist fails the render.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Mapping

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateNotFound,
    UndefinedError,
    select_autoescape,
)

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"

TOKEN_PATTERN = re.compile(r"\[([A-Z][A-Z0-9_]*)\]")


class UnresolvedPlaceholder(Exception):
    """Raised when rendered output still contains placeholders."""

    def __init__(self, tokens: Iterable[str], source: str = "") -> None:
        self.tokens = sorted(set(tokens))
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Unresolved placeholder(s){where}: {', '.join(self.tokens)}")


class TemplateRenderer:
    """Renders skeleton templates with total placeholder substitution."""

    def __init__(
        self,
        template_dir: str | Path | None = None,
        fill_later: Iterable[str] = (),
    ) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.fill_later = frozenset(fill_later)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    # -- Rendering ---------------------------------------------------------

    def render(self, template: str, substitutions: Mapping[str, str]) -> str:
        """Render an inline template string.

        Raises:
            UnresolvedPlaceholder: If any non-whitelisted placeholder remains.
        """
        try:
            text = self.env.from_string(template).render(**substitutions)
        except UndefinedError as exc:
            raise UnresolvedPlaceholder([_undefined_name(exc)]) from exc
        return self.substitute_tokens(text, substitutions)

    def render_file(self, template_id: str, substitutions: Mapping[str, str]) -> str:
        """Render a template stored under the template directory.

        Args:
            template_id: Path relative to the template directory (e.g.
                ``"unreal/Module.h.j2"``).
            substitutions: Placeholder name -> value.
        """
        template = self.env.get_template(template_id)
        try:
            text = template.render(**substitutions)
        except UndefinedError as exc:
            raise UnresolvedPlaceholder([_undefined_name(exc)], source=template_id) from exc
        return self.substitute_tokens(text, substitutions, source=template_id)

    def substitute_tokens(
        self,
        text: str,
        substitutions: Mapping[str, str],
        source: str = "",
    ) -> str:
        """Replace every ``[TOKEN]`` marker found in *substitutions*.

        Each marker is replaced in one pass, so the result does not depend on
        the order of the mapping and substituted values are never rescanned.
        """

        def _replace(match: re.Match[str]) -> str:
            token = match.group(1)
            if token in substitutions:
                return str(substitutions[token])
            return match.group(0)

        result = TOKEN_PATTERN.sub(_replace, text)
        leftover = self.unresolved_tokens(result)
        if leftover:
            raise UnresolvedPlaceholder(leftover, source=source)
        return result

    def unresolved_tokens(self, text: str) -> list[str]:
        """Return markers in *text* that are not whitelisted as fill-later."""
        return [t for t in TOKEN_PATTERN.findall(text) if t not in self.fill_later]

    # -- Utility -----------------------------------------------------------

    def has_template(self, template_id: str) -> bool:
        try:
            self.env.get_template(template_id)
        except TemplateNotFound:
            return False
        return True

    def list_templates(self, prefix: str = "") -> list[str]:
        """Return a sorted list of all ``.j2`` template paths under *prefix*."""
        search_dir = self.template_dir / prefix if prefix else self.template_dir
        if not search_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in search_dir.rglob("*.j2")
        )


def _undefined_name(exc: UndefinedError) -> str:
    """Pull the variable name out of a Jinja2 ``UndefinedError`` message."""
    match = re.search(r"'([^']+)' is undefined", str(exc))
    return match.group(1) if match else str(exc)
