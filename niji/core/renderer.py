"""Template variable substitution."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Mapping

from niji.core.models import Scalar
from niji.errors import TemplateReadError, UndefinedVariableError

# `{{ name }}` or `{{ palette.red }}`; anything else inside braces is literal text.
_REFERENCE_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_-]*(?:\.[A-Za-z_][A-Za-z0-9_-]*)*)\s*\}\}")


def format_value(value: Scalar) -> str:
    """Return the text substituted for a variable value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class TemplateRenderer:
    """Replaces variable references in template text with theme values."""

    def render(self, source: str, variables: Mapping[str, Scalar]) -> str:
        """Render ``source`` against ``variables``.

        Raises UndefinedVariableError for the first reference that has no
        value. ``variables`` is never modified.
        """

        def substitute(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in variables:
                raise UndefinedVariableError(name=name)
            return format_value(variables[name])

        return _REFERENCE_RE.sub(substitute, source)

    def render_file(self, template: Path, variables: Mapping[str, Scalar]) -> str:
        try:
            source = template.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateReadError(
                message=f"Unable to read template {template.name}: {exc}",
                path=template,
            ) from exc
        try:
            return self.render(source, variables)
        except UndefinedVariableError as exc:
            exc.path = template
            raise

    @staticmethod
    def references(source: str) -> list[str]:
        """List referenced variable names in order of first use."""
        seen: dict[str, None] = {}
        for match in _REFERENCE_RE.finditer(source):
            seen.setdefault(match.group(1), None)
        return list(seen)
