"""Shared pytest fixtures and test helpers for opkit tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterator
from dataclasses import dataclass
from pathlib import Path

import pytest
from click.testing import CliRunner

from opkit.config.settings import BuildEnvironment
from opkit.infrastructure.process import Command, CommandResult, ProcessRunner, format_command

ENV_VARS = (
    "CXX",
    "CXX_FLAGS",
    "OPKIT_PREFIX",
    "SIGNTOOL",
    "MAKEAPPX",
    "CSC_KEY_PASSWORD",
    "APPLE_ID",
    "APPLE_ID_PASSWORD",
)

SETTINGS_TEXT = """\
# hello world
name: hello
title: Hello
executable: hello
version: 1.0
revision: 2
arch: amd64
output: build

linux_cmd: ./build.sh
mac_cmd: ./build.sh
win_cmd: build.bat
flags: -O2
debug_flags: -g
linux_icon: icon.png
bundle_identifier: com.example.hello
description: A greeting
"""


@dataclass
class Call:
    """One command seen by :class:`FakeRunner`."""

    command: Command
    cwd: Path | None
    capture: bool

    @property
    def text(self) -> str:
        return format_command(self.command)

    @property
    def argv(self) -> list[str]:
        assert not isinstance(self.command, str)
        return [str(c) for c in self.command]


Response = tuple[int, str]


class FakeRunner(ProcessRunner):
    """ProcessRunner that records commands instead of executing them.

    Rules match on a substring of the formatted command line; the first
    matching rule answers. Unmatched commands succeed with no output.
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[Call] = []
        self._rules: list[tuple[str, Callable[[Call], Response]]] = []

    def on(self, needle: str, *responses: Response) -> None:
        """Answer matching commands with *responses* in order, repeating the last."""
        queue: Iterator[Response] = iter(responses)
        last: list[Response] = [responses[-1]]

        def handler(_call: Call) -> Response:
            response = next(queue, None)
            if response is None:
                return last[0]
            return response

        self._rules.append((needle, handler))

    def on_call(self, needle: str, handler: Callable[[Call], Response]) -> None:
        self._rules.append((needle, handler))

    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        capture: bool = True,
    ) -> CommandResult:
        call = Call(command, cwd, capture)
        self.calls.append(call)
        for needle, handler in self._rules:
            if needle in call.text:
                code, output = handler(call)
                return CommandResult(command, code, output)
        return CommandResult(command, 0, "")

    def matching(self, needle: str) -> list[Call]:
        return [call for call in self.calls if needle in call.text]


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's compiler and credential env vars out of tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    opkit_logger = logging.getLogger("opkit")
    opkit_level = opkit_logger.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    opkit_logger.setLevel(opkit_level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def environment(tmp_path: Path) -> BuildEnvironment:
    """Environment with an explicit compiler and install prefix."""
    return BuildEnvironment(cxx="c++", prefix=tmp_path / "prefix")


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a project directory with ``settings.config``.

    Keyword arguments replace (or, with value None, remove) settings keys.
    """

    def _make(name: str = "project", text: str = SETTINGS_TEXT, **overrides: str | None) -> Path:
        root = tmp_path / name
        root.mkdir()
        lines: list[str] = []
        seen: set[str] = set()
        for line in text.splitlines():
            key = line.partition(":")[0].strip()
            if key in overrides:
                seen.add(key)
                value = overrides[key]
                if value is None:
                    continue
                line = f"{key}: {value}"
            lines.append(line)
        for key, value in overrides.items():
            if key not in seen and value is not None:
                lines.append(f"{key}: {value}")
        (root / "settings.config").write_text("\n".join(lines) + "\n", encoding="utf-8")
        (root / "icon.png").write_bytes(b"\x89PNG")
        return root

    return _make


@pytest.fixture
def project(make_project: Callable[..., Path]) -> Path:
    """Project directory with the default settings."""
    return make_project()
