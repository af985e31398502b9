from pydantic import BaseModel

from shared.models.analysis import normalize_name


class SubjectMention(BaseModel):
    doc_id: str
    doc_name: str
    context: str = ""


class TrackedSubject(BaseModel):
    """Cross-document record of a person of interest.

    Unique by normalized name; holds at most one mention per document id.
    """

    id: str
    name: str
    mentions: list[SubjectMention] = []
    sensitive: bool = False

    @property
    def key(self) -> str:
        return normalize_name(self.name)

    def has_mention(self, doc_id: str) -> bool:
        return any(m.doc_id == doc_id for m in self.mentions)
