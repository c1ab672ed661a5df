"""Root CLI command for opkit: build one project directory."""

from __future__ import annotations

from pathlib import Path

import click

from opkit import __version__
from opkit.commands._base import OpkitCommand
from opkit.commands._context import AppContext
from opkit.config.settings import OutputOptions, PipelineFlags
from opkit.errors import OpkitError


@click.command(
    cls=OpkitCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
    examples="""\
  opkit ./my-app                # debug build
  opkit ./my-app -xd -p         # release build, packaged
  opkit ./my-app -xd -c -me -mn # release build, signed with entitlements, notarized
  opkit ./my-app -o -r          # rerun the user build only, then launch""",
)
@click.version_option(version=__version__, prog_name="opkit")
@click.argument("project_dir", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option("-s", "--store", is_flag=True, help="Bundle for the app store.")
@click.option("-c", "--codesign", is_flag=True, help="Code sign the bundle.")
@click.option("-me", "--entitlements", is_flag=True, help="(macOS) Use entitlements.")
@click.option("-mn", "--notarize", is_flag=True, help="(macOS) Notarize the bundle.")
@click.option("-o", "--only-user-build", is_flag=True, help="Only run the user build step.")
@click.option("-p", "--package", is_flag=True, help="Package the app.")
@click.option("-r", "--run", "run_after", is_flag=True, help="Run after building.")
@click.option("-xd", "--no-debug", is_flag=True, help="Turn off debug mode.")
@click.option("-v", "--verbose", is_flag=True, help="Log commands and tool output.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON result.")
@click.pass_context
def cli(
    ctx: click.Context,
    project_dir: Path | None,
    store: bool,
    codesign: bool,
    entitlements: bool,
    notarize: bool,
    only_user_build: bool,
    package: bool,
    run_after: bool,
    no_debug: bool,
    verbose: bool,
    log_json: bool,
    json_output: bool,
) -> None:
    """Build, package, sign and notarize the desktop app in PROJECT_DIR."""
    if project_dir is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    app = AppContext(OutputOptions(json_output=json_output, verbose=verbose, log_json=log_json))
    flags = PipelineFlags(
        store=store,
        codesign=codesign,
        entitlements=entitlements,
        notarize=notarize,
        only_user_build=only_user_build,
        package=package,
        run=run_after,
        debug=not no_debug,
    )

    from opkit.services.pipeline import BuildPipeline

    try:
        result = BuildPipeline(project_dir, flags).run()
    except OpkitError as exc:
        app.fail(exc)
    app.emit(result)
