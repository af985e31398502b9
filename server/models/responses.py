from datetime import datetime

from pydantic import BaseModel

from shared.models.analysis import AnalysisResult
from shared.models.document import DocumentRecord


class DocumentResponse(BaseModel):
    id: str
    name: str
    status: str
    analysis: AnalysisResult | None
    lineage: list[str]
    error_message: str | None
    has_source: bool
    is_poi: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: DocumentRecord) -> "DocumentResponse":
        return cls(
            id=record.id,
            name=record.name,
            status=record.status.value,
            analysis=record.analysis,
            lineage=record.lineage,
            error_message=record.error_message,
            has_source=record.blob_handle is not None or bool(record.text),
            is_poi=record.is_poi,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class DocumentListResponse(BaseModel):
    documents: list[DocumentResponse]
    total: int


class RetryResponse(BaseModel):
    queued: int


class SchedulerStatus(BaseModel):
    active: int
    max_workers: int
    queued: int


class StatusResponse(BaseModel):
    documents: dict[str, int]
    primary: SchedulerStatus
    verification: SchedulerStatus
    providers: list[str]
    enabled_providers: list[str]
    parallel_analysis: bool
    dual_check_mode: bool
    tracked_subjects: int
