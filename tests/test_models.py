"""Tests for outcome and observation models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from deskpilot.models import ActionOutcome, Observation


class TestActionOutcome:
    """Tests for ActionOutcome."""

    def test_ok_outcome(self) -> None:
        outcome = ActionOutcome.ok()

        assert outcome.success is True
        assert outcome.error is None
        assert outcome.status == "OK"

    def test_ok_outcome_carries_data(self) -> None:
        outcome = ActionOutcome.ok(data="file contents")

        assert outcome.data == "file contents"

    def test_fail_outcome(self) -> None:
        outcome = ActionOutcome.fail("window not found")

        assert outcome.success is False
        assert outcome.status == "ERROR: window not found"

    def test_fail_with_empty_message_gets_placeholder(self) -> None:
        outcome = ActionOutcome.fail("")

        assert outcome.error == "unknown error"

    def test_failed_outcome_requires_error(self) -> None:
        with pytest.raises(ValidationError):
            ActionOutcome(success=False)


class TestObservation:
    """Tests for Observation."""

    def test_defaults(self) -> None:
        observation = Observation(image_base64="aGVsbG8=")

        assert observation.media_type == "image/jpeg"
        assert observation.size == (1920, 1080)

    def test_empty_image_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Observation(image_base64="")

    def test_non_positive_size_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Observation(image_base64="eA==", width=0, height=10)
