"""Tests for the opkit command line."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from opkit import __version__
from opkit.cli import cli
from opkit.domain.platforms import Platform


@pytest.fixture
def linux_build(monkeypatch: pytest.MonkeyPatch, fake_runner):
    """Route the CLI's pipeline through the recording runner on linux."""
    monkeypatch.setenv("CXX", "c++")
    monkeypatch.setattr("opkit.services.pipeline.ProcessRunner", lambda **_kw: fake_runner)
    monkeypatch.setattr("opkit.services.pipeline.current_platform", lambda: Platform.LINUX)
    return fake_runner


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "PROJECT_DIR" in result.output
    assert "--no-debug" in result.output
    assert "-me, --entitlements" in result.output


def test_cli_no_args_prints_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_examples(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--examples"])
    assert result.exit_code == 0
    assert "opkit ./my-app -xd -p" in result.output


def test_missing_settings_exits_1(cli_runner: CliRunner, tmp_path: Path) -> None:
    result = cli_runner.invoke(cli, [str(tmp_path)])
    assert result.exit_code == 1
    assert "Settings file not found" in result.output


def test_missing_required_key(
    cli_runner: CliRunner, make_project: Callable[..., Path], linux_build
) -> None:
    project = make_project(arch=None)
    result = cli_runner.invoke(cli, [str(project)])
    assert result.exit_code == 1
    assert "'arch' key/value is required" in result.output
    assert linux_build.calls == []


class TestBuild:
    def test_debug_build(self, cli_runner: CliRunner, project: Path, linux_build) -> None:
        result = cli_runner.invoke(cli, [str(project)])
        assert result.exit_code == 0, result.output
        assert "OK" in result.output
        assert "hello-dev_1.0-2_amd64" in result.output
        assert (project / "build" / "hello-dev_1.0-2_amd64" / "DEBIAN" / "control").is_file()

    def test_release_package_with_prefix(
        self, cli_runner: CliRunner, project: Path, linux_build
    ) -> None:
        result = cli_runner.invoke(cli, [str(project), "-xd", "--pack"])
        assert result.exit_code == 0, result.output
        (deb,) = linux_build.matching("dpkg-deb")
        assert deb.argv[-2].endswith("hello_1.0-2_amd64")

    def test_json_result(self, cli_runner: CliRunner, project: Path, linux_build) -> None:
        result = cli_runner.invoke(cli, [str(project), "--json"])
        assert result.exit_code == 0, result.output
        assert '"op": "build"' in result.output
        assert '"stages"' in result.output

    def test_tool_exit_code_propagates(
        self, cli_runner: CliRunner, project: Path, linux_build
    ) -> None:
        linux_build.on("./build.sh", (7, "user build exploded"))
        result = cli_runner.invoke(cli, [str(project)])
        assert result.exit_code == 7
        assert "Unable to run user build command" in result.output
        assert "user build exploded" in result.output

    def test_signing_warning_on_linux(
        self, cli_runner: CliRunner, project: Path, linux_build
    ) -> None:
        result = cli_runner.invoke(cli, [str(project), "-c"])
        assert result.exit_code == 0, result.output
        assert "WARNING: code signing is not supported on linux" in result.output
