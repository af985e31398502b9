from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import DocumentRecord
from shared.models.subject import TrackedSubject


class StoreClientInterface(ABC):
    """Persistence of document records, tracked subjects and source blobs.

    Writes are eventually consistent: callers fire them off as background
    tasks and losing the very latest save on a crash is tolerated.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """Returns the name of the store engine in lowercase. E.g. "json" """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Prepare the backing storage."""
        return None

    async def close(self) -> None:
        return None

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    @abstractmethod
    async def save(self, record: DocumentRecord) -> None:
        """Insert or replace a document record."""
        pass

    @abstractmethod
    async def load_all(self) -> list[DocumentRecord]:
        """Return every persisted document record, oldest first."""
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete all records, subjects and blobs."""
        pass

    ##########################################
    ################ SUBJECTS ################
    ##########################################

    @abstractmethod
    async def save_subjects(self, subjects: list[TrackedSubject]) -> None:
        """Replace the persisted set of tracked subjects."""
        pass

    @abstractmethod
    async def load_subjects(self) -> list[TrackedSubject]:
        pass

    ##########################################
    ################# BLOBS ##################
    ##########################################

    @abstractmethod
    async def put_blob(self, doc_id: str, data: bytes) -> str:
        """Store the source bytes of a document.

        Returns:
            str: Opaque handle to pass to get_blob().
        """
        pass

    @abstractmethod
    async def get_blob(self, handle: str) -> bytes | None:
        """Return the bytes behind a handle, or None if they are gone."""
        pass
