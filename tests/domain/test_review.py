"""Tests for review state and response parsing."""

from __future__ import annotations

import pytest

from opkit.domain.review import (
    PendingSubmission,
    ReviewStatus,
    classify_status,
    parse_request_id,
    parse_status,
)
from opkit.errors import UnparsableResponse

SUBMIT_OUTPUT = """\
2024-01-01 12:00:00.000 altool[1234:5678] No errors uploading 'build/app.zip'.
RequestUUID = 2f4c6b2e-1111-2222-3333-444455556666
"""

STATUS_OUTPUT = """\
No errors getting notarization info.

          Date: 2024-01-01 12:00:00 +0000
          Hash: abc123
   RequestUUID: 2f4c6b2e-1111-2222-3333-444455556666
        Status: in progress
"""


class TestParseRequestId:
    def test_extracts_uuid(self) -> None:
        assert parse_request_id(SUBMIT_OUTPUT) == "2f4c6b2e-1111-2222-3333-444455556666"

    def test_missing(self) -> None:
        assert parse_request_id("No errors uploading.\n") is None

    def test_first_line(self) -> None:
        assert parse_request_id("RequestUUID = abc") == "abc"


class TestParseStatus:
    def test_extracts_status(self) -> None:
        assert parse_status(STATUS_OUTPUT) == "in progress"

    def test_missing_status_line(self) -> None:
        with pytest.raises(UnparsableResponse) as excinfo:
            parse_status("Error: network unreachable\n")
        assert "network unreachable" in excinfo.value.output

    def test_status_word_elsewhere_is_not_a_status(self) -> None:
        with pytest.raises(UnparsableResponse):
            parse_status("Status Message: Package Approved\n")


class TestClassifyStatus:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("in progress", ReviewStatus.IN_PROGRESS),
            ("In Progress", ReviewStatus.IN_PROGRESS),
            ("invalid", ReviewStatus.REJECTED),
            ("success", ReviewStatus.ACCEPTED),
            ("something new", ReviewStatus.INCONCLUSIVE),
        ],
    )
    def test_classification(self, text: str, expected: ReviewStatus) -> None:
        assert classify_status(text) is expected


class TestPendingSubmission:
    def test_initial_state(self) -> None:
        submission = PendingSubmission(request_id="abc")
        assert submission.status is ReviewStatus.SUBMITTED
        assert submission.attempts == 0
        assert not submission.is_terminal

    def test_attempts_increase(self) -> None:
        submission = PendingSubmission(request_id="abc")
        assert [submission.next_attempt() for _ in range(3)] == [1, 2, 3]

    def test_in_progress_self_loop(self) -> None:
        submission = PendingSubmission(request_id="abc")
        submission.transition(ReviewStatus.IN_PROGRESS)
        submission.transition(ReviewStatus.IN_PROGRESS)
        assert submission.status is ReviewStatus.IN_PROGRESS

    @pytest.mark.parametrize(
        "terminal",
        [
            ReviewStatus.ACCEPTED,
            ReviewStatus.REJECTED,
            ReviewStatus.TIMED_OUT,
            ReviewStatus.INCONCLUSIVE,
        ],
    )
    def test_terminal_states_are_final(self, terminal: ReviewStatus) -> None:
        submission = PendingSubmission(request_id="abc")
        submission.transition(terminal)
        assert submission.is_terminal
        with pytest.raises(ValueError, match="Invalid review transition"):
            submission.transition(ReviewStatus.IN_PROGRESS)

    def test_cannot_return_to_submitted(self) -> None:
        submission = PendingSubmission(request_id="abc")
        with pytest.raises(ValueError, match="Invalid review transition"):
            submission.transition(ReviewStatus.SUBMITTED)
