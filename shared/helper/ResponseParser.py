"""Recovery of structured analysis results from raw model output.

Models often wrap their JSON in narration, reasoning blocks or markdown code
fences. Parsing runs in three steps: clean, parse directly, and fall back to
the outermost ``{...}`` span. If nothing parses, providers return a degraded
result built from the raw text instead of raising.
"""

import json
import re
from typing import Any

from pydantic import ValidationError

from shared.models.analysis import AnalysisMetadata, AnalysisResult, Entity
from shared.models.errors import ParseError

_THINK_BLOCK = re.compile(r"<think>[\s\S]*?</think>", re.IGNORECASE)
_CODE_FENCE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)\s*```")

DEGRADED_SUMMARY_CHARS = 500
FALLBACK_SUMMARY = "Summary extraction failed."


def clean_response(text: str) -> str:
    """Strip reasoning blocks and surrounding code fences from a response.

    Args:
        text (str): Raw model output.

    Returns:
        str: The fenced body if a code fence is present, else the stripped text.
    """
    cleaned = _THINK_BLOCK.sub("", text or "").strip()
    match = _CODE_FENCE.search(cleaned)
    if match:
        cleaned = match.group(1).strip()
    return cleaned


def parse_json(text: str) -> dict:
    """Parse a JSON object out of raw model output.

    Args:
        text (str): Raw model output.

    Returns:
        dict: The parsed object.

    Raises:
        ParseError: If neither the cleaned text nor its outermost brace span
            is a JSON object.
    """
    cleaned = clean_response(text)
    try:
        parsed = json.loads(cleaned)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    first, last = cleaned.find("{"), cleaned.rfind("}")
    if first != -1 and last > first:
        try:
            parsed = json.loads(cleaned[first:last + 1])
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
    raise ParseError("No JSON object found in response (%d chars)." % len(text or ""))


def _pick(raw: dict, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return default


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _scalar_str(value: Any) -> str | None:
    """Scalars become strings; objects and lists are dropped."""
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value).strip() or None


def _entities(value: Any) -> list[Entity]:
    entities: list[Entity] = []
    if not isinstance(value, list):
        return entities
    for item in value:
        if isinstance(item, str) and item.strip():
            entities.append(Entity(name=item.strip()))
            continue
        if not isinstance(item, dict) or not str(item.get("name") or "").strip():
            continue
        try:
            entity = Entity.model_validate({
                **item,
                "name": str(item["name"]).strip(),
                "role": str(item.get("role") or ""),
                "context": str(item.get("context") or ""),
            })
        except ValidationError:
            continue
        entities.append(entity)
    return entities


def build_result(raw: dict, raw_text: str = "", provider: str = "") -> AnalysisResult:
    """Map a parsed provider object onto an AnalysisResult.

    Accepts both the camelCase keys the prompts ask for and snake_case
    variants. The summary is never empty: it falls back to a placeholder when
    structured data is present, otherwise to the raw text.
    """
    entities = _entities(_pick(raw, "entities", default=[]))
    insights = _str_list(_pick(raw, "keyInsights", "key_insights", default=[]))
    flagged = _str_list(_pick(raw, "flaggedPOIs", "flaggedSubjects", "flagged_subjects", default=[]))

    summary = str(_pick(raw, "summary", default="") or "").strip()
    if not summary:
        if entities or insights or flagged:
            summary = FALLBACK_SUMMARY
        else:
            summary = (raw_text or "").strip()[:DEGRADED_SUMMARY_CHARS] or FALLBACK_SUMMARY

    confidence = _pick(raw, "confidence")
    try:
        confidence = float(confidence) if confidence is not None else None
    except (TypeError, ValueError):
        confidence = None

    metadata = AnalysisMetadata(
        locations=_str_list(_pick(raw, "locations", default=[])),
        organizations=_str_list(_pick(raw, "organizations", default=[])),
        document_date=_scalar_str(_pick(raw, "documentDate", "document_date")),
        confidence=confidence,
        processed_by=[provider] if provider else [],
    )
    sentiment = _scalar_str(_pick(raw, "sentiment"))
    return AnalysisResult(
        summary=summary,
        entities=entities,
        key_insights=insights,
        flagged_subjects=flagged,
        sentiment=sentiment,
        metadata=metadata,
    )


def degraded_result(raw_text: str, provider: str = "") -> AnalysisResult:
    """Result used when the response is not parseable: raw text as summary."""
    summary = (raw_text or "").strip()[:DEGRADED_SUMMARY_CHARS] or "Could not extract summary."
    return AnalysisResult(
        summary=summary,
        metadata=AnalysisMetadata(processed_by=[provider] if provider else []),
        degraded=True,
    )


def recover_result(raw_text: str, provider: str = "") -> AnalysisResult:
    """Parse raw model output into a result, degrading instead of raising."""
    try:
        raw = parse_json(raw_text)
        return build_result(raw, raw_text=raw_text, provider=provider)
    except (ParseError, ValidationError):
        return degraded_result(raw_text, provider=provider)
