"""Error taxonomy for the build pipeline.

Every fatal condition is an :class:`OpkitError`. Services raise; the CLI
context is the only place that turns an error into a log line, a rendered
result and a process exit code.
"""

from __future__ import annotations

from collections.abc import Sequence


class OpkitError(Exception):
    """Base class for all pipeline failures.

    Attributes:
        code: Short machine-readable error code (used in rendered results).
        exit_code: Process exit code the CLI terminates with.
    """

    code = "ERROR"
    exit_code = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(OpkitError):
    """Missing settings file, missing required key, or invalid environment."""

    code = "CONFIG"


class FilesystemError(OpkitError):
    """Directory creation, copy, or removal failed."""

    code = "FILESYSTEM"


class SubprocessError(OpkitError):
    """An external tool exited non-zero. Its exit code is propagated."""

    code = "SUBPROCESS"

    def __init__(
        self,
        message: str,
        *,
        exit_code: int,
        output: str = "",
        command: Sequence[str] | str = (),
    ) -> None:
        super().__init__(message)
        # A signal-terminated child reports a negative code; the shell convention is 1.
        self.exit_code = exit_code if exit_code > 0 else 1
        self.output = output
        self.command = command


class UnparsableResponse(OpkitError):
    """The review service answered without the expected textual marker."""

    code = "UNPARSABLE_RESPONSE"

    def __init__(self, message: str, *, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class ReviewRejected(OpkitError):
    """The review service classified the submission as invalid."""

    code = "REVIEW_REJECTED"

    def __init__(self, message: str, *, request_id: str, output: str = "") -> None:
        super().__init__(message)
        self.request_id = request_id
        self.output = output


class ReviewTimedOut(OpkitError):
    """The poll attempt ceiling was reached before a verdict."""

    code = "REVIEW_TIMED_OUT"

    def __init__(self, message: str, *, request_id: str, attempts: int) -> None:
        super().__init__(message)
        self.request_id = request_id
        self.attempts = attempts
