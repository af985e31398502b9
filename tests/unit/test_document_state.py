from services.document_analysis.DocumentState import DocumentState
from shared.clients.store.memory.StoreClientMemory import StoreClientMemory
from shared.models.document import DocumentRecord, DocumentStatus


class _BrokenStore(StoreClientMemory):
    async def save(self, record: DocumentRecord) -> None:
        raise OSError("disk full")


class TestWriteBehind:
    async def test_writes_reach_store_after_flush(self, helper_config, memory_store):
        state = DocumentState(helper_config, memory_store)

        await state.add(DocumentRecord(id="a", name="a.txt", text="one"))
        await state.transition("a", DocumentStatus.PROCESSING)
        await state.flush()

        [saved] = await memory_store.load_all()
        assert saved.status == DocumentStatus.PROCESSING
        await state.close()

    async def test_writer_restarts_after_close(self, helper_config, memory_store):
        state = DocumentState(helper_config, memory_store)
        await state.add(DocumentRecord(id="a", name="a.txt", text="one"))
        await state.close()

        await state.transition("a", DocumentStatus.PROCESSING)
        await state.flush()

        [saved] = await memory_store.load_all()
        assert saved.status == DocumentStatus.PROCESSING
        await state.close()

    async def test_failed_write_is_dropped(self, helper_config):
        store = _BrokenStore(helper_config=helper_config)
        state = DocumentState(helper_config, store)

        await state.add(DocumentRecord(id="a", name="a.txt", text="one"))
        await state.flush()

        assert state.get("a").status == DocumentStatus.PENDING
        assert await store.load_all() == []
        await state.close()
