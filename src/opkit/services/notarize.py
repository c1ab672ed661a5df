"""Notarization: submit the archived bundle and poll until a verdict.

The poll loop is the only automatic retry in the pipeline. It sleeps a fixed
interval before every status query, with no backoff growth, and gives up once
the attempt counter exceeds :data:`~opkit.domain.review.MAX_POLL_ATTEMPTS`.

Outcomes:

- ``in progress`` keeps polling.
- ``success`` ends the loop.
- ``invalid`` logs the response and the submission history, then raises
  :class:`~opkit.errors.ReviewRejected`.
- Any other status ends the loop without failing the build (logged only).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from opkit.config.settings import BuildEnvironment
from opkit.domain.review import (
    MAX_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    PendingSubmission,
    ReviewStatus,
    classify_status,
    parse_request_id,
    parse_status,
)
from opkit.errors import ConfigError, ReviewRejected, ReviewTimedOut
from opkit.infrastructure.process import ProcessRunner
from opkit.services.base import BaseService

logger = logging.getLogger(__name__)


class NotarizationPoller(BaseService):
    """Track one review submission through ``xcrun altool``.

    Args:
        sleep: Blocking sleep used between status queries (replaced in tests).
        interval: Seconds to sleep before each query.
        max_attempts: Highest attempt number that still issues a query.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        environment: BuildEnvironment,
        *,
        sleep: Callable[[float], None] = time.sleep,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
    ) -> None:
        super().__init__(runner, environment)
        self._sleep = sleep
        self._interval = interval
        self._max_attempts = max_attempts

    def credentials(self) -> tuple[str, str]:
        """Review-service account id and secret.

        Raises:
            ConfigError: ``APPLE_ID`` or ``APPLE_ID_PASSWORD`` is unset.
        """
        password = self._env.apple_id_password
        if not self._env.apple_id or password is None or not password.get_secret_value():
            msg = "notarization requires the APPLE_ID and APPLE_ID_PASSWORD env vars"
            raise ConfigError(msg)
        return self._env.apple_id, password.get_secret_value()

    def notarize(self, archive: Path, bundle_identifier: str) -> PendingSubmission | None:
        """Submit *archive* and poll to a terminal state.

        Returns the finished submission, or None when the service returned no
        request identifier (nothing to track).
        """
        submission = self.submit(archive, bundle_identifier)
        if submission is None:
            logger.info("no request id in notarization response; nothing to poll")
            return None
        self.poll(submission)
        logger.info("finished notarization")
        return submission

    def submit(self, archive: Path, bundle_identifier: str) -> PendingSubmission | None:
        """Upload *archive* for review.

        Raises:
            SubprocessError: The submission tool exited non-zero.
        """
        username, password = self.credentials()
        result = self._runner.check(
            [
                "xcrun",
                "altool",
                "--notarize-app",
                "--username",
                username,
                "--password",
                password,
                "--primary-bundle-id",
                bundle_identifier,
                "--file",
                str(archive),
            ],
            action="notarize",
        )
        request_id = parse_request_id(result.output)
        if request_id is None:
            return None
        logger.info("polling for notarization: %s", request_id)
        return PendingSubmission(request_id=request_id)

    def query_status(self, submission: PendingSubmission) -> tuple[ReviewStatus, str]:
        """Run one status query. Returns the classification and raw output.

        Raises:
            UnparsableResponse: The response carries no status line.
        """
        username, password = self.credentials()
        result = self._runner.run(
            [
                "xcrun",
                "altool",
                "--notarization-info",
                submission.request_id,
                "-u",
                username,
                "-p",
                password,
            ]
        )
        text = parse_status(result.output)
        return classify_status(text), result.output

    def poll(self, submission: PendingSubmission) -> ReviewStatus:
        """Poll until *submission* reaches a terminal status.

        Raises:
            ReviewTimedOut: The attempt counter exceeded the ceiling.
            ReviewRejected: The service reported the submission invalid.
        """
        while not submission.is_terminal:
            attempt = submission.next_attempt()
            if attempt > self._max_attempts:
                submission.transition(ReviewStatus.TIMED_OUT)
                msg = "the review service did not respond to the request for notarization"
                raise ReviewTimedOut(msg, request_id=submission.request_id, attempts=attempt)

            self._sleep(self._interval)
            status, output = self.query_status(submission)
            submission.transition(status)

            if status is ReviewStatus.IN_PROGRESS:
                logger.info("checking for updates from the review service (attempt %d)", attempt)
            elif status is ReviewStatus.REJECTED:
                logger.error("the review service rejected the request for notarization")
                logger.error("%s", output)
                self._log_history()
                msg = "the review service rejected the request for notarization"
                raise ReviewRejected(msg, request_id=submission.request_id, output=output)
            elif status is ReviewStatus.ACCEPTED:
                logger.info("successfully notarized")
            else:
                logger.warning("the review service was unable to notarize: %s", output.strip())
        return submission.status

    def _log_history(self) -> None:
        """Fetch and log the submission history; failures are only logged."""
        username, password = self.credentials()
        result = self._runner.run(
            ["xcrun", "altool", "--notarization-history", "0", "-u", username, "-p", password]
        )
        if result.ok:
            logger.error("%s", result.output)
        else:
            logger.warning(
                "unable to get notarization history (exit %d): %s",
                result.returncode,
                result.output.strip(),
            )
