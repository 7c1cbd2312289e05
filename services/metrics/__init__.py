# Metric normalization & reconciliation engine
from services.metrics.models import (
    CONFIDENCE_ORDER,
    Currency,
    SourceConfidence,
    FieldSource,
    MetricsRecord,
    METRIC_FIELDS,
)
from services.metrics.text_parser import extract_metrics_from_text
from services.metrics.structured_mapper import extract_metrics_from_structured, flatten_object
from services.metrics.derived_calculator import calculate_derived_metrics
from services.metrics.merger import MergeStrategy, merge_metrics
from services.metrics.validation import MetricDiscrepancy, check_consistency
from services.metrics.hashing import hash_input_data
from services.metrics.extractor import extract_all_metrics

__all__ = [
    "CONFIDENCE_ORDER",
    "Currency",
    "SourceConfidence",
    "FieldSource",
    "MetricsRecord",
    "METRIC_FIELDS",
    "extract_metrics_from_text",
    "extract_metrics_from_structured",
    "flatten_object",
    "calculate_derived_metrics",
    "MergeStrategy",
    "merge_metrics",
    "MetricDiscrepancy",
    "check_consistency",
    "hash_input_data",
    "extract_all_metrics",
]
