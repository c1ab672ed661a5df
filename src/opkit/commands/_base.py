"""Custom Click command class.

``OpkitCommand`` adds two behaviors to ``click.Command``:

- ``--examples`` prints usage examples and exits, keeping ``--help`` short.
- Any unambiguous prefix of a long option is accepted (``--pack`` for
  ``--package``). Ambiguous or unknown prefixes fall through to Click's
  normal "no such option" error.
"""

from __future__ import annotations

from typing import Any

import click


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


def expand_option_prefixes(args: list[str], long_options: list[str]) -> list[str]:
    """Replace unique long-option prefixes in *args* with the full option.

    Examples:
        >>> expand_option_prefixes(["--pack", "app"], ["--package", "--run"])
        ['--package', 'app']
    """
    expanded: list[str] = []
    for index, arg in enumerate(args):
        if arg == "--":
            expanded.extend(args[index:])
            break
        name, sep, value = arg.partition("=")
        if name.startswith("--") and name not in long_options:
            matches = [opt for opt in long_options if opt.startswith(name)]
            if len(matches) == 1:
                arg = f"{matches[0]}{sep}{value}"
        expanded.append(arg)
    return expanded


class OpkitCommand(click.Command):
    """Click Command with ``--examples`` support and long-option prefixes."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        long_options = sorted(
            {
                opt
                for param in self.get_params(ctx)
                for opt in (*param.opts, *param.secondary_opts)
                if opt.startswith("--")
            }
        )
        return super().parse_args(ctx, expand_option_prefixes(args, long_options))
