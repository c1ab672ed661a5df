"""AppContext: logging setup and result emission for the CLI.

Created once per invocation. Owns the conversion of pipeline outcomes into
stdout/stderr output and process exit codes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NoReturn

import click

from opkit.output.renderers import format_result
from opkit.services.result import ServiceResult

if TYPE_CHECKING:
    from opkit.config.settings import OutputOptions
    from opkit.errors import OpkitError

logger = logging.getLogger("opkit.cli")


class AppContext:
    """Shared state for one CLI invocation."""

    def __init__(self, options: OutputOptions) -> None:
        self.options = options

        from opkit.config.logging import configure_logging

        configure_logging(verbose=options.verbose, log_json=options.log_json)

    def emit(self, result: ServiceResult, *, exit_code: int = 1) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with *exit_code*.
        """
        output = format_result(result, json_output=self.options.json_output)
        if result.ok:
            click.echo(output)
            if not self.options.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(exit_code)

    def fail(self, exc: OpkitError, *, op: str = "build") -> NoReturn:
        """Log *exc*, emit it as a failed result and exit with its code."""
        output = getattr(exc, "output", "")
        logger.error("%s", exc.message)
        if output:
            logger.error("%s", output.rstrip())
        self.emit(ServiceResult.from_error(op, exc), exit_code=exc.exit_code)
        raise SystemExit(exc.exit_code)
