"""File based store: one JSON file per document, one for subjects, raw blobs.

Layout below ``STORE_JSON_PATH``::

    documents/<doc_id>.json
    subjects.json
    blobs/<doc_id>.bin

Writes go to a temporary file first and are moved into place, so a crash
leaves either the old or the new version of a file. File I/O runs in a worker
thread to keep the event loop free.
"""

import asyncio
import json
import os
import shutil

from pydantic import ValidationError

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentRecord
from shared.models.subject import TrackedSubject


def _write_atomic(path: str, data: bytes) -> None:
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "wb") as fh:
        fh.write(data)
    os.replace(tmp_path, path)


class StoreClientJson(StoreClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._root = helper_config.get_string_val("STORE_JSON_PATH", default=os.path.join(os.getcwd(), "data"))
        self._documents_dir = os.path.join(self._root, "documents")
        self._blobs_dir = os.path.join(self._root, "blobs")
        self._subjects_path = os.path.join(self._root, "subjects.json")

    def _get_engine_name(self) -> str:
        return "Json"

    async def boot(self) -> None:
        await asyncio.to_thread(self._ensure_dirs)

    def _ensure_dirs(self) -> None:
        os.makedirs(self._documents_dir, exist_ok=True)
        os.makedirs(self._blobs_dir, exist_ok=True)

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def save(self, record: DocumentRecord) -> None:
        path = os.path.join(self._documents_dir, f"{record.id}.json")
        payload = record.model_dump_json().encode("utf-8")
        await asyncio.to_thread(self._save_file, path, payload)

    def _save_file(self, path: str, payload: bytes) -> None:
        self._ensure_dirs()
        _write_atomic(path, payload)

    async def load_all(self) -> list[DocumentRecord]:
        return await asyncio.to_thread(self._load_all_sync)

    def _load_all_sync(self) -> list[DocumentRecord]:
        if not os.path.isdir(self._documents_dir):
            return []
        records: list[DocumentRecord] = []
        for filename in sorted(os.listdir(self._documents_dir)):
            if not filename.endswith(".json"):
                continue
            path = os.path.join(self._documents_dir, filename)
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    records.append(DocumentRecord.model_validate_json(fh.read()))
            except (OSError, ValidationError) as exc:
                self.logging.error("Skipping unreadable document record %s: %s", path, exc)
        records.sort(key=lambda r: r.created_at)
        return records

    async def clear_all(self) -> None:
        await asyncio.to_thread(self._clear_sync)

    def _clear_sync(self) -> None:
        for directory in (self._documents_dir, self._blobs_dir):
            shutil.rmtree(directory, ignore_errors=True)
        if os.path.exists(self._subjects_path):
            os.remove(self._subjects_path)
        self._ensure_dirs()

    ##########################################
    ################ SUBJECTS ################
    ##########################################

    async def save_subjects(self, subjects: list[TrackedSubject]) -> None:
        payload = json.dumps([s.model_dump(mode="json") for s in subjects]).encode("utf-8")
        await asyncio.to_thread(self._save_file, self._subjects_path, payload)

    async def load_subjects(self) -> list[TrackedSubject]:
        return await asyncio.to_thread(self._load_subjects_sync)

    def _load_subjects_sync(self) -> list[TrackedSubject]:
        if not os.path.exists(self._subjects_path):
            return []
        try:
            with open(self._subjects_path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
            return [TrackedSubject.model_validate(item) for item in raw]
        except (OSError, ValueError, ValidationError) as exc:
            self.logging.error("Could not read tracked subjects from %s: %s", self._subjects_path, exc)
            return []

    ##########################################
    ################# BLOBS ##################
    ##########################################

    async def put_blob(self, doc_id: str, data: bytes) -> str:
        path = os.path.join(self._blobs_dir, f"{doc_id}.bin")
        await asyncio.to_thread(self._save_file, path, data)
        return f"json:{doc_id}"

    async def get_blob(self, handle: str) -> bytes | None:
        if not handle.startswith("json:"):
            return None
        path = os.path.join(self._blobs_dir, f"{handle.split(':', 1)[1]}.bin")
        return await asyncio.to_thread(self._read_blob, path)

    @staticmethod
    def _read_blob(path: str) -> bytes | None:
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except FileNotFoundError:
            return None
