"""Blocking subprocess primitive.

Every external tool the pipeline drives goes through :class:`ProcessRunner`.
A command is either an argument list (run directly) or a string (run through
the shell, used for the user-declared build command). The working directory
is always an explicit parameter; the caller's cwd is never changed.

There is no timeout: a hung tool blocks the pipeline.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from opkit.errors import SubprocessError

logger = logging.getLogger(__name__)

# Exit code reported when the executable itself cannot be started.
COMMAND_NOT_FOUND = 127

Command = Sequence[str] | str


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of one invocation."""

    command: Command
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_command(command: Command, secrets: Sequence[str] = ()) -> str:
    """Render *command* for logs with every secret value masked."""
    text = command if isinstance(command, str) else shlex.join(str(c) for c in command)
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    return text


class ProcessRunner:
    """Run external commands to completion.

    Args:
        secrets: Values masked whenever a command line is logged or attached
            to an error.
    """

    def __init__(self, *, secrets: Sequence[str] = ()) -> None:
        self._secrets = tuple(secrets)

    def run(
        self,
        command: Command,
        *,
        cwd: Path | None = None,
        capture: bool = True,
    ) -> CommandResult:
        """Run *command*, never raising for a non-zero exit.

        With ``capture=False`` the child inherits the terminal and the result
        carries no output.
        """
        logger.debug("$ %s", format_command(command, self._secrets))
        pipe = subprocess.PIPE if capture else None
        try:
            completed = subprocess.run(
                command if isinstance(command, str) else [str(c) for c in command],
                cwd=cwd,
                shell=isinstance(command, str),
                stdout=pipe,
                stderr=subprocess.STDOUT if capture else None,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as exc:
            logger.debug("Unable to start command: %s", exc)
            return CommandResult(command, COMMAND_NOT_FOUND, str(exc))
        return CommandResult(command, completed.returncode, completed.stdout or "")

    def check(
        self,
        command: Command,
        *,
        action: str,
        cwd: Path | None = None,
    ) -> CommandResult:
        """Run *command* and raise when it exits non-zero.

        Raises:
            SubprocessError: Carrying the tool's exit code and output.
        """
        result = self.run(command, cwd=cwd)
        if not result.ok:
            raise SubprocessError(
                f"Unable to {action}",
                exit_code=result.returncode,
                output=result.output,
                command=format_command(command, self._secrets),
            )
        return result
