"""Rich renderers for ServiceResult.

Successful builds render as a key/value summary followed by a stage table;
failures render as a single error line (captured tool output is logged, and
included in the JSON payload).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from opkit.output.console import create_console, get_output, style_for_review

if TYPE_CHECKING:
    from rich.console import Console

    from opkit.services.result import ServiceResult


def format_result(result: ServiceResult, *, json_output: bool = False) -> str:
    """Format a ServiceResult for display (JSON or Rich text)."""
    if json_output:
        return result.model_dump_json(indent=2)
    return render_result(result)


def render_result(result: ServiceResult) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()
    if result.ok:
        _render_success(result, console)
    else:
        _render_error(result, console)
    return get_output(console).rstrip("\n")


def _render_success(result: ServiceResult, console: Console) -> None:
    header = Text()
    header.append("OK", style="opkit.ok")
    header.append(": ")
    header.append(result.op, style="opkit.op")
    console.print(header)

    for key, value in result.data.items():
        style = _value_style(key, value)
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items())
        line = Text("  ")
        line.append(f"{key}: ", style="opkit.key")
        line.append(str(value), style=style)
        console.print(line)

    stages: list[dict[str, Any]] = (result.meta or {}).get("stages", [])
    if stages:
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Stage")
        table.add_column("Result")
        table.add_column("Time", justify="right")
        for stage in stages:
            if stage["ran"]:
                table.add_row(
                    stage["stage"], stage["note"] or "done", f"{stage['duration_ms']:.0f}ms"
                )
            else:
                table.add_row(
                    Text(stage["stage"], style="opkit.skipped"),
                    Text(f"skipped ({stage['note']})", style="opkit.skipped"),
                    "",
                )
        console.print(table)


def _value_style(key: str, value: Any) -> str:
    if key in ("bundle", "binary", "package"):
        return "opkit.path"
    if key == "review" and isinstance(value, dict):
        return style_for_review(str(value.get("status", "")))
    return ""


def _render_error(result: ServiceResult, console: Console) -> None:
    message = result.error.message if result.error else "Unknown error"
    line = Text()
    line.append("ERROR", style="opkit.error")
    line.append(f": {result.op}: {message}")
    console.print(line)
