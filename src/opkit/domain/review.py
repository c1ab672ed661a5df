"""Review (notarization) submission state and response parsing.

State machine::

    submitted ──► in_progress ──┐ (self-loop)
        │            │  ◄───────┘
        └────────────┴──► accepted | rejected | timed_out | inconclusive

``inconclusive`` is the lenient terminal: the service answered with a status
that is neither in progress, invalid nor success. The loop stops without
failing the build.

The review tool prints free-form text. Extraction is isolated here behind two
narrow parsers so the poller never guesses at a status it could not read.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from opkit.errors import UnparsableResponse

MAX_POLL_ATTEMPTS = 1024
POLL_INTERVAL_SECONDS = 1024 * 6 / 1000

REQUEST_ID_RE = re.compile(r"^\s*RequestUUID\s*=\s*(\S.*?)\s*$", re.MULTILINE)
STATUS_RE = re.compile(r"^\s*Status:\s*(\S.*?)\s*$", re.MULTILINE)


class ReviewStatus(StrEnum):
    """Classification of one pending submission."""

    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    INCONCLUSIVE = "inconclusive"


_TERMINAL = ["accepted", "rejected", "timed_out", "inconclusive"]

REVIEW_TRANSITIONS: dict[str, list[str]] = {
    "submitted": ["in_progress", *_TERMINAL],
    "in_progress": ["in_progress", *_TERMINAL],
    "accepted": [],
    "rejected": [],
    "timed_out": [],
    "inconclusive": [],
}


@dataclass
class PendingSubmission:
    """One in-flight review request, owned by the poller."""

    request_id: str
    attempts: int = 0
    status: ReviewStatus = ReviewStatus.SUBMITTED

    @property
    def is_terminal(self) -> bool:
        return not REVIEW_TRANSITIONS[self.status]

    def next_attempt(self) -> int:
        """Increment and return the attempt counter."""
        self.attempts += 1
        return self.attempts

    def transition(self, target: ReviewStatus) -> None:
        """Move to *target*.

        Raises:
            ValueError: *target* is not reachable from the current status.
        """
        if target not in REVIEW_TRANSITIONS[self.status]:
            msg = f"Invalid review transition: {self.status} -> {target}"
            raise ValueError(msg)
        self.status = target


def parse_request_id(output: str) -> str | None:
    """Extract the request identifier from a submission response.

    Returns None when the response carries no identifier.
    """
    match = REQUEST_ID_RE.search(output)
    return match.group(1) if match else None


def parse_status(output: str) -> str:
    """Extract the status text from a status-query response.

    Raises:
        UnparsableResponse: No ``Status:`` line was found.
    """
    match = STATUS_RE.search(output)
    if match is None:
        msg = "Review status response has no 'Status:' line"
        raise UnparsableResponse(msg, output=output)
    return match.group(1)


def classify_status(text: str) -> ReviewStatus:
    """Map status text reported by the service onto a :class:`ReviewStatus`."""
    lowered = text.casefold()
    if "in progress" in lowered:
        return ReviewStatus.IN_PROGRESS
    if "invalid" in lowered:
        return ReviewStatus.REJECTED
    if "success" in lowered:
        return ReviewStatus.ACCEPTED
    return ReviewStatus.INCONCLUSIVE
