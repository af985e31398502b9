"""Consensus merge of several providers' results for one document.

The merge is a pure function and independent of input order: providers are
processed sorted by name and every output collection is emitted sorted by its
normalized key, so [A, B] and [B, A] produce identical results.
"""

from shared.models.analysis import AnalysisMetadata, AnalysisResult, Entity, normalize_name

CROSS_VERIFIED_MIN_PROVIDERS = 2


def _cross_verified_tag(providers: list[str]) -> str:
    return "[Cross-verified by %s]" % ", ".join(providers)


def _union_strings(groups: list[list[str]]) -> list[str]:
    """Case-insensitive union, first spelling wins, sorted by normalized key."""
    seen: dict[str, str] = {}
    for group in groups:
        for value in group:
            key = normalize_name(value)
            if key and key not in seen:
                seen[key] = value.strip()
    return [seen[key] for key in sorted(seen)]


def _merge_entities(pairs: list[tuple[str, AnalysisResult]]) -> list[Entity]:
    merged: dict[str, Entity] = {}
    providers_by_key: dict[str, set[str]] = {}

    for provider, result in pairs:
        for entity in result.entities:
            key = entity.key
            if not key:
                continue
            providers_by_key.setdefault(key, set()).add(provider)
            current = merged.get(key)
            if current is None:
                merged[key] = entity.model_copy()
                continue
            merged[key] = current.model_copy(update={
                "role": current.role or entity.role,
                "context": current.context or entity.context,
                "notable": current.notable or entity.notable,
            })

    entities: list[Entity] = []
    for key in sorted(merged):
        entity = merged[key]
        providers = sorted(providers_by_key[key])
        if len(providers) >= CROSS_VERIFIED_MIN_PROVIDERS:
            context = f"{entity.context} {_cross_verified_tag(providers)}".strip()
            entity = entity.model_copy(update={"notable": True, "context": context})
        entities.append(entity)
    return entities


def _first(values: list):
    return next((v for v in values if v is not None), None)


def merge_results(pairs: list[tuple[str, AnalysisResult]]) -> AnalysisResult:
    """Combine the successful results of several providers into one.

    Args:
        pairs (list[tuple[str, AnalysisResult]]): (provider name, result) for
            every provider that succeeded. Must not be empty.

    Returns:
        AnalysisResult: Entities grouped by normalized name, with names
            reported by at least two providers marked notable and tagged as
            cross-verified; de-duplicated insights, flagged subjects,
            locations and organizations; every provider's summary kept with
            attribution; processed_by listing all contributors.

    Raises:
        ValueError: If pairs is empty.
    """
    if not pairs:
        raise ValueError("merge_results() needs at least one result.")

    pairs = sorted(pairs, key=lambda pair: pair[0])
    providers = [provider for provider, _ in pairs]
    metadata = [result.metadata or AnalysisMetadata() for _, result in pairs]

    if len(pairs) == 1:
        provider, result = pairs[0]
        return result.model_copy(update={
            "metadata": metadata[0].model_copy(update={"processed_by": [provider]}),
        })

    summary = "\n\n".join(f"[{provider}] {result.summary.strip()}" for provider, result in pairs)
    confidences = [m.confidence for m in metadata if m.confidence is not None]

    return AnalysisResult(
        summary=summary,
        entities=_merge_entities(pairs),
        key_insights=_union_strings([r.key_insights for _, r in pairs]),
        flagged_subjects=_union_strings([r.flagged_subjects for _, r in pairs]),
        sentiment=_first([r.sentiment for _, r in pairs]),
        metadata=AnalysisMetadata(
            locations=_union_strings([m.locations for m in metadata]),
            organizations=_union_strings([m.organizations for m in metadata]),
            document_date=_first([m.document_date for m in metadata]),
            confidence=max(confidences) if confidences else None,
            processed_by=providers,
        ),
        degraded=all(r.degraded for _, r in pairs),
    )
