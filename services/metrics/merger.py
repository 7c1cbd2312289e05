"""
Metric Merger
Combines a stored metrics record with a newly extracted one.
"""
from enum import Enum
from typing import Union

from services.metrics.models import (
    CONFIDENCE_ORDER,
    METRIC_FIELDS,
    MetricsRecord,
    SourceConfidence,
)
from utils.logger import get_logger

logger = get_logger(__name__)


class MergeStrategy(str, Enum):
    """How conflicting metric values are resolved"""
    LATEST = "latest"          # Incoming value always wins
    CONFIDENCE = "confidence"  # Incoming value wins only at >= field confidence


def _merge_confidence(existing: MetricsRecord, incoming: MetricsRecord) -> SourceConfidence:
    """Record-level confidence never goes down."""
    if incoming.source_confidence is None:
        return existing.source_confidence
    existing_rank = CONFIDENCE_ORDER[existing.source_confidence or SourceConfidence.LOW]
    if CONFIDENCE_ORDER[incoming.source_confidence] >= existing_rank:
        return incoming.source_confidence
    return existing.source_confidence


def merge_metrics(
    existing: MetricsRecord,
    incoming: MetricsRecord,
    strategy: Union[MergeStrategy, str] = MergeStrategy.LATEST,
) -> MetricsRecord:
    """
    Merge ``incoming`` into a copy of ``existing``.

    With the default LATEST strategy every metric present in ``incoming``
    overwrites the existing value. With CONFIDENCE an incoming value only
    replaces an existing one when its field confidence is at least as high.
    In both cases the record confidence only moves up, calculation notes are
    concatenated (existing first) and a field's provenance follows its value.
    Neither input is modified.
    """
    strategy = MergeStrategy(strategy)
    existing = existing if existing is not None else MetricsRecord()
    merged = existing.model_copy(deep=True)
    if incoming is None:
        return merged

    for field in METRIC_FIELDS:
        value = getattr(incoming, field)
        if value is None:
            continue

        if strategy == MergeStrategy.CONFIDENCE and getattr(existing, field) is not None:
            incoming_rank = CONFIDENCE_ORDER[incoming.field_confidence(field)]
            existing_rank = CONFIDENCE_ORDER[existing.field_confidence(field)]
            if incoming_rank < existing_rank:
                logger.debug(
                    f"[MetricMerger] Keeping {field}={getattr(existing, field)} over "
                    f"lower confidence {value}"
                )
                continue

        setattr(merged, field, value)
        source = incoming.field_sources.get(field)
        if source is not None:
            merged.field_sources[field] = source.model_copy()
        else:
            merged.field_sources.pop(field, None)

    if incoming.currency is not None:
        merged.currency = incoming.currency

    merged.source_confidence = _merge_confidence(existing, incoming)
    merged.calculation_notes = list(existing.calculation_notes) + list(incoming.calculation_notes)

    return merged
