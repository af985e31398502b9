"""Analysis payloads exchanged between providers, the merger and the orchestrator."""

from pydantic import AliasChoices, BaseModel, Field


def normalize_name(name: str) -> str:
    """Normalized form used to compare entity and subject names."""
    return " ".join(name.split()).casefold()


class Entity(BaseModel):
    """A person (or other named subject) found in a document.

    Attributes:
        name:     Display name as reported by the provider.
        role:     Free-text role, e.g. "witness" or "former governor".
        context:  Short snippet explaining the mention.
        notable:  Corroborated or high-profile. Providers report it as ``isFamous``.
    """

    name: str
    role: str = ""
    context: str = ""
    notable: bool = Field(default=False, validation_alias=AliasChoices("notable", "isFamous", "is_famous"))

    @property
    def key(self) -> str:
        return normalize_name(self.name)


class AnalysisMetadata(BaseModel):
    locations: list[str] = []
    organizations: list[str] = []
    document_date: str | None = None
    confidence: float | None = None
    processed_by: list[str] = []


class AnalysisResult(BaseModel):
    """Structured result of analysing one document.

    ``summary`` is never empty on success. ``degraded`` marks results built
    from a response that could not be parsed as JSON.
    """

    summary: str
    entities: list[Entity] = []
    key_insights: list[str] = []
    flagged_subjects: list[str] = []
    sentiment: str | None = None
    metadata: AnalysisMetadata | None = None
    degraded: bool = False


class VerificationTarget(BaseModel):
    """Entity a verification pass is asked to confirm."""

    name: str
    role: str = ""
    context: str = ""


class AnalyzeOptions(BaseModel):
    """Per-call options for ``analyze``.

    Attributes:
        verification_target: When set, the provider is asked for a focused
            confirmation of this entity instead of a general analysis.
        use_search: Backend-specific enrichment (external search) if supported.
    """

    verification_target: VerificationTarget | None = None
    use_search: bool = False
