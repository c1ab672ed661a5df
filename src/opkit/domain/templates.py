"""Placeholder substitution for generated manifests.

Templates contain ``{{key}}`` placeholders (whitespace inside the braces is
tolerated). There are no conditionals, loops, filters or escapes: each
platform ships its own template text. A placeholder without a matching key
is left exactly as written, so a template may mention keys that only some
settings files define.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_.-]+)\s*\}\}")


def render(template: str, variables: Mapping[str, str]) -> str:
    """Substitute every resolvable placeholder in *template*.

    Substituted values are inserted verbatim and never rescanned, so a value
    containing ``{{...}}`` is not expanded a second time.

    Examples:
        >>> render("{{a}}-{{b}}", {"a": "x"})
        'x-{{b}}'
    """

    def _replace(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return match.group(0) if value is None else value

    return PLACEHOLDER_RE.sub(_replace, template)


def placeholders(template: str) -> list[str]:
    """Return the distinct placeholder names in *template*, in order of appearance."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_RE.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)
