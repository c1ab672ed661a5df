"""Rich console used to render build results.

Output is rendered into a StringIO buffer and returned as a string, so the
CLI context decides which stream it lands on. Rich drops color codes when the
console is not a terminal.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

OPKIT_THEME = Theme(
    {
        "opkit.ok": "bold green",
        "opkit.error": "bold red",
        "opkit.op": "bold cyan",
        "opkit.key": "dim",
        "opkit.path": "dim",
        "opkit.skipped": "dim",
        "opkit.review.accepted": "green",
        "opkit.review.pending": "yellow",
    }
)

# Review statuses that did not end in acceptance still render, but highlighted.
_REVIEW_STYLES: dict[str, str] = {
    "accepted": "opkit.review.accepted",
    "inconclusive": "opkit.review.pending",
}


def create_console(*, no_color: bool = False, width: int = 120) -> Console:
    """Console writing to an in-memory buffer."""
    return Console(
        file=StringIO(),
        theme=OPKIT_THEME,
        no_color=no_color,
        highlight=False,
        width=width,
    )


def get_output(console: Console) -> str:
    """Text written to a console from :func:`create_console`."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_review(status: str) -> str:
    """Rich style for a review status (empty when unstyled)."""
    return _REVIEW_STYLES.get(status, "")
