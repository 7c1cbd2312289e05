"""
Metric extraction entry point.
Routes any input through the text parser and/or structured mapper, merges
what they find and derives the rest.
"""
import json
from typing import Any

from services.metrics.derived_calculator import calculate_derived_metrics
from services.metrics.merger import merge_metrics
from services.metrics.models import MetricsRecord
from services.metrics.structured_mapper import extract_metrics_from_structured
from services.metrics.text_parser import extract_metrics_from_text

# String fields of a structured payload that are also read as free text
TEXT_FIELDS = ("answer", "description", "notes", "content", "text", "summary")


def extract_all_metrics(input_data: Any) -> MetricsRecord:
    """
    Extract and derive metrics from a string or a dict.

    Strings go straight to the text parser. Dicts go through the structured
    mapper, then each known text field is text-parsed and merged, then the
    whole payload's JSON is text-parsed as a last resort. Anything else
    yields an empty record.
    """
    if isinstance(input_data, str):
        metrics = extract_metrics_from_text(input_data)
    elif isinstance(input_data, dict):
        metrics = extract_metrics_from_structured(input_data)

        for field in TEXT_FIELDS:
            value = input_data.get(field)
            if value and isinstance(value, str):
                metrics = merge_metrics(metrics, extract_metrics_from_text(value))

        json_str = json.dumps(input_data, separators=(",", ":"), ensure_ascii=False, default=str)
        metrics = merge_metrics(metrics, extract_metrics_from_text(json_str))
    else:
        metrics = MetricsRecord()

    return calculate_derived_metrics(metrics)
