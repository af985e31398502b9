"""Error taxonomy for the analysis pipeline.

ProviderError is retried (transient) or failed over (permanent) and never
reaches a caller on its own. ParseError is always absorbed into a degraded
result inside the provider. Only AllProvidersFailed and NoProvidersEnabled
surface, as ``status=error`` on the document.
"""


class ProviderError(Exception):
    """Transport-level failure of a single provider call."""

    def __init__(self, message: str, provider: str = "", transient: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.transient = transient
        self.status_code = status_code

    def __str__(self) -> str:
        kind = "transient" if self.transient else "permanent"
        prefix = f"{self.provider}: " if self.provider else ""
        return f"{prefix}{self.message} ({kind})"


class ParseError(Exception):
    """Provider output could not be turned into a JSON object."""


class AllProvidersFailed(Exception):
    """Every provider of the execution policy failed."""

    def __init__(self, errors: list[tuple[str, str]]):
        self.errors = errors
        details = "; ".join(f"{name}: {err}" for name, err in errors) or "no provider attempted"
        super().__init__(f"All providers failed: {details}")


class NoProvidersEnabled(Exception):
    """The configuration leaves no provider enabled."""

    def __init__(self, message: str = "No analysis provider is enabled. Check PROVIDER_ENGINES and PROVIDER_<ENGINE>_ENABLED."):
        super().__init__(message)


class InvalidTransition(Exception):
    """A document status change outside the allowed lifecycle edges."""

    def __init__(self, doc_id: str, current: str, target: str):
        self.doc_id = doc_id
        self.current = current
        self.target = target
        super().__init__(f"Document {doc_id}: illegal status change {current} -> {target}")


class DocumentNotFound(KeyError):
    """No document record with the given id."""

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(doc_id)

    def __str__(self) -> str:
        return f"Document {self.doc_id!r} not found"


class SourceMissing(Exception):
    """A document's source bytes are gone and it has no extracted text."""

    def __init__(self, doc_id: str):
        self.doc_id = doc_id
        super().__init__(f"Source of document {doc_id} is missing; re-ingest the document.")
