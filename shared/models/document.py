"""Document record and its status lifecycle."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from shared.models.analysis import AnalysisResult
from shared.models.errors import InvalidTransition


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    ERROR = "error"


# Every status edge the lifecycle allows. Retry/re-processing re-enter at
# pending; processing -> pending only happens when a stale record is restored.
ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.PROCESSING, DocumentStatus.ERROR}),
    DocumentStatus.PROCESSING: frozenset({
        DocumentStatus.COMPLETED,
        DocumentStatus.VERIFYING,
        DocumentStatus.ERROR,
        DocumentStatus.PENDING,
    }),
    DocumentStatus.VERIFYING: frozenset({DocumentStatus.COMPLETED}),
    DocumentStatus.COMPLETED: frozenset({DocumentStatus.PENDING, DocumentStatus.ERROR}),
    DocumentStatus.ERROR: frozenset({DocumentStatus.PENDING}),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentRecord(BaseModel):
    """A single ingested document.

    Attributes:
        id:             Document id assigned at ingestion.
        name:           Display name (usually the file name).
        text:           Extracted full text; empty until extraction ran.
        images:         Extracted page images (base64). Kept in memory only.
        status:         Current lifecycle status.
        analysis:       Final analysis result, once available.
        lineage:        Ordered names of the providers that contributed.
        blob_handle:    Opaque handle of the stored source bytes.
        error_message:  Aggregated failure message when status is error.
        is_poi:         True when the analysis flagged a subject or named a notable entity.
    """

    id: str
    name: str
    text: str = ""
    images: list[str] = Field(default_factory=list, exclude=True)
    status: DocumentStatus = DocumentStatus.PENDING
    analysis: AnalysisResult | None = None
    lineage: list[str] = []
    blob_handle: str | None = None
    error_message: str | None = None
    is_poi: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def with_status(self, status: DocumentStatus, **changes) -> "DocumentRecord":
        """Return a copy in ``status`` with ``changes`` applied.

        Raises:
            InvalidTransition: If the lifecycle does not allow the edge.
        """
        if status != self.status and status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(self.id, self.status.value, status.value)
        return self.model_copy(update={**changes, "status": status, "updated_at": _utcnow()})

    def with_changes(self, **changes) -> "DocumentRecord":
        """Return a copy with ``changes`` applied, keeping the status."""
        return self.model_copy(update={**changes, "updated_at": _utcnow()})
