from services.document_analysis.SubjectAggregator import SubjectAggregator
from shared.models.analysis import Entity
from shared.models.config import AnalysisSettings


def _aggregator(**changes) -> SubjectAggregator:
    return SubjectAggregator(AnalysisSettings(**changes))


class TestPromotionRules:
    def test_relevant_roles_and_notable_entities(self):
        aggregator = _aggregator()
        assert aggregator.is_relevant(Entity(name="A", role="Special Agent"))
        assert aggregator.is_relevant(Entity(name="B", role="key witness"))
        assert aggregator.is_relevant(Entity(name="C", notable=True))
        assert not aggregator.is_relevant(Entity(name="D", role="driver"))

    def test_sensitive_requires_notable(self):
        aggregator = _aggregator()
        assert aggregator.is_sensitive(Entity(name="A", role="Former Governor", notable=True))
        assert not aggregator.is_sensitive(Entity(name="B", role="governor"))
        assert not aggregator.is_sensitive(Entity(name="C", role="pilot", notable=True))

    def test_custom_patterns(self):
        aggregator = _aggregator(relevance_pattern="pilot", sensitive_pattern="ceo")
        assert aggregator.is_relevant(Entity(name="A", role="Pilot"))
        assert not aggregator.is_relevant(Entity(name="B", role="witness"))
        assert aggregator.is_high_value(Entity(name="C", role="CEO"))


class TestAggregate:
    def test_promotes_only_relevant_entities(self):
        subjects = _aggregator().aggregate([], "d1", "doc1.txt", [
            Entity(name="Jane Doe", role="witness", context="saw it"),
            Entity(name="Bob", role="driver"),
        ])
        assert [s.name for s in subjects] == ["Jane Doe"]
        assert subjects[0].mentions[0].doc_id == "d1"
        assert subjects[0].mentions[0].context == "saw it"

    def test_idempotent_per_document(self):
        aggregator = _aggregator()
        entities = [Entity(name="Jane Doe", role="witness")]

        once = aggregator.aggregate([], "d1", "doc1.txt", entities)
        twice = aggregator.aggregate(once, "d1", "doc1.txt", entities)

        assert twice == once
        assert len(twice[0].mentions) == 1

    def test_does_not_mutate_input(self):
        aggregator = _aggregator()
        before = aggregator.aggregate([], "d1", "doc1.txt", [Entity(name="Jane Doe", role="witness")])

        after = aggregator.aggregate(before, "d2", "doc2.txt", [Entity(name="jane doe")])

        assert len(before[0].mentions) == 1
        assert [m.doc_id for m in after[0].mentions] == ["d1", "d2"]

    def test_known_subject_collects_mentions_case_insensitively(self):
        aggregator = _aggregator()
        subjects = aggregator.aggregate([], "d1", "a", [Entity(name="Jane Doe", role="witness")])
        subjects = aggregator.aggregate(subjects, "d2", "b", [Entity(name="JANE   DOE", role="driver")])

        assert len(subjects) == 1
        assert subjects[0].name == "Jane Doe"
        assert len(subjects[0].mentions) == 2

    def test_sensitive_flag_is_sticky(self):
        aggregator = _aggregator()
        subjects = aggregator.aggregate([], "d1", "a", [Entity(name="X Y", role="senator", notable=True)])
        subjects = aggregator.aggregate(subjects, "d2", "b", [Entity(name="x y", role="witness")])

        assert subjects[0].sensitive is True
