from shared.clients.extract.ExtractClientInterface import ExtractClientInterface


class ExtractClientPlaintext(ExtractClientInterface):
    """Treats the source as UTF-8 text; produces no images."""

    def _get_engine_name(self) -> str:
        return "Plaintext"

    async def do_extract(self, data: bytes) -> tuple[str, list[str]]:
        text = data.decode("utf-8", errors="replace")
        return text.replace("\x00", ""), []
