from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig


class ExtractClientInterface(ABC):
    """Turns source document bytes into text and page images.

    PDF rendering and OCR live outside this project; implementations adapt
    whatever extraction backend is available to this contract.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    def get_engine_name(self) -> str:
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    @abstractmethod
    async def do_extract(self, data: bytes) -> tuple[str, list[str]]:
        """Extract a document.

        Args:
            data (bytes): Raw source bytes.

        Returns:
            tuple[str, list[str]]: Full text and base64 JPEG page images (0..n).
        """
        pass
