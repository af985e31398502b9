import pytest

from shared.models.document import ALLOWED_TRANSITIONS, DocumentRecord, DocumentStatus
from shared.models.errors import InvalidTransition

S = DocumentStatus


class TestStatusTransitions:
    @pytest.mark.parametrize("current,target", [
        (S.PENDING, S.PROCESSING),
        (S.PROCESSING, S.COMPLETED),
        (S.PROCESSING, S.VERIFYING),
        (S.PROCESSING, S.ERROR),
        (S.VERIFYING, S.COMPLETED),
        (S.ERROR, S.PENDING),
        (S.COMPLETED, S.PENDING),
    ])
    def test_allowed_edges(self, current, target):
        record = DocumentRecord(id="d", name="n", status=current)
        assert record.with_status(target).status == target

    @pytest.mark.parametrize("current,target", [
        (S.PENDING, S.COMPLETED),
        (S.PENDING, S.VERIFYING),
        (S.VERIFYING, S.ERROR),
        (S.VERIFYING, S.PENDING),
        (S.ERROR, S.COMPLETED),
        (S.COMPLETED, S.VERIFYING),
    ])
    def test_illegal_edges(self, current, target):
        record = DocumentRecord(id="d", name="n", status=current)
        with pytest.raises(InvalidTransition):
            record.with_status(target)

    def test_verifying_only_completes(self):
        assert ALLOWED_TRANSITIONS[S.VERIFYING] == frozenset({S.COMPLETED})

    def test_with_status_returns_copy(self):
        record = DocumentRecord(id="d", name="n")
        moved = record.with_status(S.PROCESSING, error_message=None)
        assert record.status == S.PENDING
        assert moved.status == S.PROCESSING
        assert moved.updated_at >= record.updated_at


class TestSerialization:
    def test_images_are_not_serialized(self):
        record = DocumentRecord(id="d", name="n", images=["abc"])
        assert "images" not in record.model_dump()
        assert DocumentRecord.model_validate_json(record.model_dump_json()).images == []
