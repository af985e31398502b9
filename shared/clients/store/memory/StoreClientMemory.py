from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentRecord
from shared.models.subject import TrackedSubject


class StoreClientMemory(StoreClientInterface):
    """Process-local store. Nothing survives a restart."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._records: dict[str, DocumentRecord] = {}
        self._subjects: list[TrackedSubject] = []
        self._blobs: dict[str, bytes] = {}

    def _get_engine_name(self) -> str:
        return "Memory"

    async def save(self, record: DocumentRecord) -> None:
        self._records[record.id] = record.model_copy(deep=True)

    async def load_all(self) -> list[DocumentRecord]:
        records = sorted(self._records.values(), key=lambda r: r.created_at)
        return [r.model_copy(deep=True) for r in records]

    async def clear_all(self) -> None:
        self._records.clear()
        self._subjects = []
        self._blobs.clear()

    async def save_subjects(self, subjects: list[TrackedSubject]) -> None:
        self._subjects = [s.model_copy(deep=True) for s in subjects]

    async def load_subjects(self) -> list[TrackedSubject]:
        return [s.model_copy(deep=True) for s in self._subjects]

    async def put_blob(self, doc_id: str, data: bytes) -> str:
        handle = f"memory:{doc_id}"
        self._blobs[handle] = data
        return handle

    async def get_blob(self, handle: str) -> bytes | None:
        return self._blobs.get(handle)
