"""Single-writer container for document records and tracked subjects.

All mutations go through ``update``/``transition``/``update_subjects``, which
apply a pure reducer (old value -> new value) under one lock. Workers never
modify records in place. Every mutation schedules a write on one background
writer task; the writer saves the latest version of each dirty item, so
rapid successive updates coalesce and never reach the store out of order.
Write failures are logged and dropped.
"""

import asyncio
from typing import Callable

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import STATUS_COLORS
from shared.models.document import DocumentRecord, DocumentStatus
from shared.models.errors import DocumentNotFound
from shared.models.subject import TrackedSubject

_SUBJECTS_KEY = "__subjects__"


class DocumentState:
    def __init__(self, helper_config: HelperConfig, store: StoreClientInterface):
        self.logging = helper_config.get_logger()
        self._store = store
        self._records: dict[str, DocumentRecord] = {}
        self._subjects: list[TrackedSubject] = []
        self._lock = asyncio.Lock()

        # persistence
        self._dirty: asyncio.Queue[str] | None = None
        self._queued: set[str] = set()
        self._writer: asyncio.Task | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get(self, doc_id: str) -> DocumentRecord:
        """Return a document record.

        Raises:
            DocumentNotFound: If the id is unknown.
        """
        record = self._records.get(doc_id)
        if record is None:
            raise DocumentNotFound(doc_id)
        return record

    def list_documents(self, status: DocumentStatus | None = None) -> list[DocumentRecord]:
        records = sorted(self._records.values(), key=lambda r: r.created_at)
        if status is not None:
            records = [r for r in records if r.status == status]
        return records

    def list_subjects(self) -> list[TrackedSubject]:
        return list(self._subjects)

    def count_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in DocumentStatus}
        for record in self._records.values():
            counts[record.status.value] += 1
        return counts

    ##########################################
    ############### MUTATIONS ################
    ##########################################

    async def add(self, record: DocumentRecord) -> DocumentRecord:
        """Insert a new record (or replace one with the same id)."""
        async with self._lock:
            self._records[record.id] = record
            self._mark_dirty(record.id)
        return record

    async def update(self, doc_id: str, reducer: Callable[[DocumentRecord], DocumentRecord]) -> DocumentRecord:
        """Replace a record with ``reducer(record)``.

        Raises:
            DocumentNotFound: If the id is unknown.
            InvalidTransition: If the reducer requests an illegal status edge.
        """
        async with self._lock:
            current = self.get(doc_id)
            updated = reducer(current)
            self._records[doc_id] = updated
            self._mark_dirty(doc_id)

        if updated.status != current.status:
            self.logging.info(
                "Document %s (%s): %s -> %s",
                doc_id, updated.name, current.status.value, updated.status.value,
                color=STATUS_COLORS.get(updated.status.value),
            )
        return updated

    async def transition(self, doc_id: str, status: DocumentStatus, **changes) -> DocumentRecord:
        """Move a record to ``status`` and apply ``changes`` in one step."""
        return await self.update(doc_id, lambda record: record.with_status(status, **changes))

    async def update_subjects(self, reducer: Callable[[list[TrackedSubject]], list[TrackedSubject]]) -> list[TrackedSubject]:
        """Replace the tracked subjects with ``reducer(subjects)``."""
        async with self._lock:
            self._subjects = reducer(list(self._subjects))
            self._mark_dirty(_SUBJECTS_KEY)
            return list(self._subjects)

    async def load(self, records: list[DocumentRecord], subjects: list[TrackedSubject]) -> None:
        """Replace the in-memory state with persisted data, without writing it back."""
        async with self._lock:
            self._records = {record.id: record for record in records}
            self._subjects = list(subjects)

    async def clear(self) -> None:
        """Drop every record and subject, in memory and in the store."""
        await self.flush()
        async with self._lock:
            self._records.clear()
            self._subjects = []
            await self._store.clear_all()

    ##########################################
    ############## PERSISTENCE ###############
    ##########################################

    def _mark_dirty(self, key: str) -> None:
        if self._dirty is None:
            self._dirty = asyncio.Queue()
        if self._writer is None or self._writer.done():
            self._writer = asyncio.create_task(self._write_loop(self._dirty))
        if key not in self._queued:
            self._queued.add(key)
            self._dirty.put_nowait(key)

    async def _write_loop(self, queue: asyncio.Queue) -> None:
        while True:
            key = await queue.get()
            self._queued.discard(key)
            try:
                if key == _SUBJECTS_KEY:
                    await self._store.save_subjects(list(self._subjects))
                elif key in self._records:
                    await self._store.save(self._records[key])
            except Exception as exc:
                self.logging.error("Persisting %s failed (write dropped): %s", key, exc)
            finally:
                queue.task_done()

    async def flush(self) -> None:
        """Wait until every scheduled write reached the store."""
        if self._dirty is not None and self._writer is not None and not self._writer.done():
            await self._dirty.join()

    async def close(self) -> None:
        """Flush pending writes and stop the writer task."""
        await self.flush()
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None
