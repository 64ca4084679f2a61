"""Tests for record schemas and lifecycle rules."""

import re

import pytest

from proofsnap.core.exceptions import IllegalTransitionError
from proofsnap.models.enums import AnchorOutcome, CaptureStatus
from proofsnap.models.schemas import AnchorResult, CaptureRecord, ProofCheck, new_record_id, to_base36


class TestCaptureRecord:
    def test_defaults(self):
        record = CaptureRecord(file_uri="/m/a.jpg", file_name="a.jpg")
        assert record.status == CaptureStatus.PENDING
        assert record.trust_score == 0
        assert not record.is_anchored
        assert re.match(r"^[0-9a-z]+$", record.id)

    def test_ids_unique(self):
        assert len({new_record_id() for _ in range(500)}) == 500

    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_lifecycle(self):
        record = CaptureRecord(file_uri="/m/a.jpg", file_name="a.jpg")
        record.transition_to(CaptureStatus.VERIFYING)
        record.transition_to(CaptureStatus.VERIFIED)
        with pytest.raises(IllegalTransitionError):
            record.transition_to(CaptureStatus.FAILED)
        with pytest.raises(IllegalTransitionError):
            CaptureRecord(file_uri="/m/b.jpg", file_name="b.jpg").transition_to(CaptureStatus.VERIFIED)

    def test_assignment_is_validated(self):
        from pydantic import ValidationError

        record = CaptureRecord(file_uri="/m/a.jpg", file_name="a.jpg")
        with pytest.raises(ValidationError):
            record.trust_score = 101
        with pytest.raises(ValidationError):
            record.ai_deepfake_score = -0.1


class TestResults:
    def test_anchor_result_anchored(self):
        assert AnchorResult(outcome=AnchorOutcome.ANCHORED, tx_ref="0x1").anchored
        assert AnchorResult(outcome=AnchorOutcome.ALREADY_EXISTS).anchored
        assert not AnchorResult(outcome=AnchorOutcome.UNAVAILABLE).anchored
        assert not AnchorResult(outcome=AnchorOutcome.INSUFFICIENT_FUNDS).anchored

    def test_proof_check_validity(self):
        ok = ProofCheck(record_id="x", hash_matches=True, signature_valid=True, anchored=False)
        assert ok.is_valid
        assert not ok.model_copy(update={"ledger_matches": False}).is_valid
        assert not ok.model_copy(update={"hash_matches": False}).is_valid
