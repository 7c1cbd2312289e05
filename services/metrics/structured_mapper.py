"""
Structured Metric Mapper
Maps tool outputs and form payloads (arbitrary nested dicts) onto canonical
metric fields through a fixed alias table.
"""
from typing import Any, Dict, List

from services.metrics.models import MetricsRecord, SourceConfidence
from services.metrics.normalization import coerce_number, is_usable_number, round_half_up
from utils.logger import get_logger

logger = get_logger(__name__)

STRUCTURED_SOURCE = "structured"

# alias -> canonical field. Order matters: a later alias for the same field
# overwrites an earlier one when both are present.
STRUCTURED_ALIASES: Dict[str, str] = {
    "arr": "arr",
    "mrr": "mrr",
    "acv": "acv",
    "aov": "acv",  # average order value, used interchangeably by some tools
    "customers": "customers",
    "customerCount": "customers",
    "clients": "customers",
    "ltv": "ltv",
    "lifetime_value": "ltv",
    "cac": "cac",
    "customer_acquisition_cost": "cac",
    "churnRate": "churn_rate",
    "churn": "churn_rate",
    "growthRate": "growth_rate",
    "growth": "growth_rate",
    "burnRate": "burn_rate",
    "monthlyBurn": "burn_rate",
    "runway": "runway",
    "revenue": "revenue",
    "valuation": "valuation",
}

SEGMENT_KEYS = ("segments", "targetSegments")


def flatten_object(obj: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    Flatten nested dicts so leaves are reachable by both their dotted path
    ("traction.arr") and their bare key ("arr"). Lists are kept as leaves.
    """
    result: Dict[str, Any] = {}

    for key, value in obj.items():
        key = str(key)
        new_key = f"{prefix}.{key}" if prefix else key
        if value and isinstance(value, dict):
            result.update(flatten_object(value, new_key))
        else:
            result[key] = value
            result[new_key] = value

    return result


def _lookup(flat_data: Dict[str, Any], data: Dict[str, Any], key: str) -> Any:
    for source in (flat_data, data):
        for candidate in (key, key.lower()):
            value = source.get(candidate)
            if value is not None:
                return value
    return None


def _segment_acv(segments: List[Any]) -> List[float]:
    values = []
    for segment in segments:
        if not isinstance(segment, dict):
            continue
        acv = segment.get("acv")
        if is_usable_number(acv) and acv > 0:
            values.append(acv)
    return values


def extract_metrics_from_structured(data: Any) -> MetricsRecord:
    """
    Extract metrics from structured data.

    Every alias whose value coerces to a positive finite number is mapped to
    its canonical field. Segment breakdowns fill ACV with the mean segment
    ACV when no ACV was given, and currentMRR / projectedMRR / projectedARR
    override the alias-table values. Anything found is tagged high
    confidence; anything unusable is skipped.
    """
    metrics = MetricsRecord()
    if not data or not isinstance(data, dict):
        return metrics

    notes: List[str] = []
    flat_data = flatten_object(data)

    for key, field in STRUCTURED_ALIASES.items():
        number = coerce_number(_lookup(flat_data, data, key))
        if number is not None and number > 0:
            metrics.set_metric(field, number, SourceConfidence.HIGH, f"{STRUCTURED_SOURCE}:{key}")
            notes.append(f"{field} from structured data ({key}): {number}")

    # Segment breakdowns (TAM calculator style)
    segments = next((data[k] for k in SEGMENT_KEYS if data.get(k)), None)
    if isinstance(segments, list):
        segment_values = _segment_acv(segments)
        if segment_values and not metrics.acv:
            acv = round_half_up(sum(segment_values) / len(segment_values))
            metrics.set_metric("acv", acv, SourceConfidence.HIGH, f"{STRUCTURED_SOURCE}:segments")
            notes.append(f"ACV calculated as average from {len(segment_values)} segments: {acv}")

    mrr = coerce_number(data.get("currentMRR") or data.get("projectedMRR"))
    if mrr is not None and mrr > 0:
        alias = "currentMRR" if data.get("currentMRR") else "projectedMRR"
        metrics.set_metric("mrr", mrr, SourceConfidence.HIGH, f"{STRUCTURED_SOURCE}:{alias}")
        notes.append(f"MRR from structured ({alias}): {mrr}")

    arr = coerce_number(data.get("projectedARR"))
    if arr is not None and arr > 0:
        metrics.set_metric("arr", arr, SourceConfidence.HIGH, f"{STRUCTURED_SOURCE}:projectedARR")
        notes.append(f"ARR from structured (projectedARR): {arr}")

    if metrics.has_metrics():
        metrics.source_confidence = SourceConfidence.HIGH
        metrics.calculation_notes = notes
        logger.debug(f"[StructuredMetricMapper] Mapped {len(notes)} values from {len(flat_data)} keys")

    return metrics
