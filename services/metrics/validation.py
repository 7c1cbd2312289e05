"""
Cross-field consistency checks.

Derivation never revisits fields that are already populated, so values that
arrived from different sources can contradict each other (ARR vs ACV ×
customers). This pass reports those contradictions; it never changes the
record.
"""
from typing import Callable, List, Tuple

from pydantic import BaseModel

from services.metrics.models import MetricsRecord
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TOLERANCE = 0.05


class MetricDiscrepancy(BaseModel):
    """Two fields that disagree with the identity relating them."""
    field_a: str
    field_b: str
    relation: str
    expected: float
    actual: float
    delta: float


# (field checked, other field(s), relation, inputs required, expected value,
#  absolute slack covering the rounding derivation applies)
CONSISTENCY_RULES: List[Tuple[str, str, str, Tuple[str, ...], Callable[[MetricsRecord], float], Callable[[MetricsRecord], float]]] = [
    ("arr", "mrr", "arr = mrr * 12", ("arr", "mrr"),
     lambda m: m.mrr * 12, lambda m: 6),
    ("arr", "acv*customers", "arr = acv * customers", ("arr", "acv", "customers"),
     lambda m: m.acv * m.customers, lambda m: m.customers / 2),
    ("ltvcac_ratio", "ltv/cac", "ltvcac_ratio = ltv / cac", ("ltvcac_ratio", "ltv", "cac"),
     lambda m: m.ltv / m.cac, lambda m: 0.05),
    ("payback_months", "cac/mrr", "payback_months = cac / mrr", ("payback_months", "cac", "mrr"),
     lambda m: m.cac / m.mrr, lambda m: 0.05),
]


def check_consistency(metrics: MetricsRecord, tolerance: float = DEFAULT_TOLERANCE) -> List[MetricDiscrepancy]:
    """
    Check the accounting identities over every field pair that is fully known.

    A discrepancy is reported when |actual - expected| exceeds both
    ``tolerance`` relative to the expected value and the rule's rounding slack.
    """
    discrepancies: List[MetricDiscrepancy] = []
    if metrics is None:
        return discrepancies

    for field_a, field_b, relation, inputs, expected_of, slack_of in CONSISTENCY_RULES:
        if not all(getattr(metrics, name) for name in inputs):
            continue

        expected = float(expected_of(metrics))
        actual = float(getattr(metrics, field_a))
        delta = actual - expected
        if abs(delta) > max(abs(expected) * tolerance, slack_of(metrics)):
            discrepancies.append(MetricDiscrepancy(
                field_a=field_a,
                field_b=field_b,
                relation=relation,
                expected=expected,
                actual=actual,
                delta=delta,
            ))

    if discrepancies:
        logger.debug(f"[MetricValidation] {len(discrepancies)} inconsistent field pairs")

    return discrepancies
