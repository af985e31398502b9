"""Derives tracked subjects (persons of interest) from analysed entities."""

import re
import uuid

from shared.models.analysis import Entity
from shared.models.config import AnalysisSettings
from shared.models.subject import SubjectMention, TrackedSubject


class SubjectAggregator:
    """Promotion rules for tracked subjects.

    An entity is promoted when it is notable, when its role matches the
    relevance pattern, or when a subject with the same normalized name is
    already tracked. A subject is sensitive when the role matches the
    sensitive pattern and the entity is notable on its own.
    """

    def __init__(self, settings: AnalysisSettings):
        self._relevance = re.compile(settings.relevance_pattern, re.IGNORECASE)
        self._sensitive = re.compile(settings.sensitive_pattern, re.IGNORECASE)

    ##########################################
    ################ CHECKER #################
    ##########################################

    def is_relevant(self, entity: Entity) -> bool:
        return entity.notable or bool(self._relevance.search(entity.role or ""))

    def is_sensitive(self, entity: Entity) -> bool:
        return entity.notable and bool(self._sensitive.search(entity.role or ""))

    def is_high_value(self, entity: Entity) -> bool:
        """High-value entities trigger the verification pass under dual-check."""
        return entity.notable or bool(self._sensitive.search(entity.role or ""))

    def get_high_value_entities(self, entities: list[Entity]) -> list[Entity]:
        return [e for e in entities if self.is_high_value(e)]

    ##########################################
    ############### AGGREGATE ################
    ##########################################

    def aggregate(
        self,
        subjects: list[TrackedSubject],
        doc_id: str,
        doc_name: str,
        entities: list[Entity],
    ) -> list[TrackedSubject]:
        """Apply one document's entities to the tracked subjects.

        Does not mutate its input; re-running it for the same document is a
        no-op because a subject holds at most one mention per doc id.

        Args:
            subjects (list[TrackedSubject]): Current tracked subjects.
            doc_id (str): Source document id.
            doc_name (str): Source document display name.
            entities (list[Entity]): Entities of the document's analysis.

        Returns:
            list[TrackedSubject]: The updated subjects, existing ones first in
                their original order, new ones appended.
        """
        by_key: dict[str, TrackedSubject] = {s.key: s.model_copy(deep=True) for s in subjects}
        order = [s.key for s in subjects]

        for entity in entities:
            key = entity.key
            if not key:
                continue
            existing = by_key.get(key)
            if existing is None and not self.is_relevant(entity):
                continue

            mention = SubjectMention(doc_id=doc_id, doc_name=doc_name, context=entity.context)
            if existing is None:
                by_key[key] = TrackedSubject(
                    id=uuid.uuid4().hex[:12],
                    name=entity.name,
                    mentions=[mention],
                    sensitive=self.is_sensitive(entity),
                )
                order.append(key)
                continue

            if not existing.has_mention(doc_id):
                existing.mentions.append(mention)
            if self.is_sensitive(entity):
                existing.sensitive = True

        return [by_key[key] for key in order]
