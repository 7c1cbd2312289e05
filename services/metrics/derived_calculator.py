"""
Derived Metric Calculator
Fills metrics implied by accounting identities over the ones already known.
A rule only ever writes a field that is still absent, so nothing observed is
overwritten and re-running derivation is a no-op.
"""
from typing import Callable, List, Optional, Tuple

from services.metrics.models import CONFIDENCE_ORDER, MetricsRecord, SourceConfidence
from services.metrics.normalization import round_half_up, round_tenth
from utils.logger import get_logger

logger = get_logger(__name__)

DERIVED_SOURCE = "derived"

# Upper bound on passes; the rule set reaches its fixed point in two or three
MAX_DERIVATION_PASSES = 5


def _inputs_confidence(metrics: MetricsRecord, *fields: str) -> SourceConfidence:
    """A derived value is only as trustworthy as its weakest input."""
    return min((metrics.field_confidence(f) for f in fields), key=CONFIDENCE_ORDER.get)


def _derive(
    metrics: MetricsRecord,
    notes: List[str],
    target: str,
    inputs: Tuple[str, ...],
    compute: Callable[[MetricsRecord], float],
    note: str,
) -> bool:
    try:
        value = compute(metrics)
    except (ZeroDivisionError, OverflowError):
        return False
    # Overflow, or a result that rounds to what is already there (0), is not progress
    if value is None or value == getattr(metrics, target):
        return False
    metrics.set_metric(target, value, _inputs_confidence(metrics, *inputs), DERIVED_SOURCE)
    notes.append(note.format(value=value))
    return True


def _apply_rules(m: MetricsRecord, notes: List[str]) -> bool:
    """One pass over the rules in their fixed order. Returns True if anything was filled."""
    changed = False

    # 1. MRR <-> ARR
    if m.arr and not m.mrr:
        changed |= _derive(m, notes, "mrr", ("arr",), lambda r: round_half_up(r.arr / 12),
                           "MRR calculated: ARR / 12 = {value}")
    elif m.mrr and not m.arr:
        changed |= _derive(m, notes, "arr", ("mrr",), lambda r: round_half_up(r.mrr * 12),
                           "ARR calculated: MRR × 12 = {value}")

    # 2. ACV from ARR + customers
    if m.arr and m.customers and not m.acv:
        changed |= _derive(m, notes, "acv", ("arr", "customers"),
                           lambda r: round_half_up(r.arr / r.customers),
                           "ACV calculated: ARR / customers = {value}")

    # 3. ARR from ACV + customers, cascading to MRR
    if m.acv and m.customers and not m.arr:
        if _derive(m, notes, "arr", ("acv", "customers"),
                   lambda r: round_half_up(r.acv * r.customers),
                   "ARR calculated: ACV × customers = {value}"):
            _derive(m, notes, "mrr", ("arr",), lambda r: round_half_up(r.arr / 12),
                    "MRR calculated: ARR / 12 = {value}")
            changed = True

    # 4. LTV:CAC ratio
    if m.ltv and m.cac and not m.ltvcac_ratio:
        changed |= _derive(m, notes, "ltvcac_ratio", ("ltv", "cac"),
                           lambda r: round_tenth(r.ltv / r.cac),
                           "LTV:CAC ratio calculated: {value}")

    # 5. LTV from CAC × ratio
    if m.cac and m.ltvcac_ratio and not m.ltv:
        changed |= _derive(m, notes, "ltv", ("cac", "ltvcac_ratio"),
                           lambda r: round_half_up(r.cac * r.ltvcac_ratio),
                           "LTV calculated from CAC × ratio = {value}")

    # 6. LTV from MRR / churn
    if m.mrr and m.churn_rate and not m.ltv:
        changed |= _derive(m, notes, "ltv", ("mrr", "churn_rate"),
                           lambda r: round_half_up(r.mrr / (r.churn_rate / 100)),
                           "LTV calculated: MRR / churn rate = {value}")

    # 7. CAC payback in months
    if m.cac and m.mrr and not m.payback_months:
        changed |= _derive(m, notes, "payback_months", ("cac", "mrr"),
                           lambda r: round_tenth(r.cac / r.mrr),
                           "Payback months calculated: CAC / MRR = {value}")

    return changed


def calculate_derived_metrics(metrics: Optional[MetricsRecord]) -> MetricsRecord:
    """
    Return a copy of ``metrics`` with every derivable field filled in.

    Rules run in their fixed order and repeat until a pass fills nothing,
    since a late rule can enable an earlier one (LTV from churn enables the
    LTV:CAC ratio). Existing notes are kept and new ones appended.
    """
    derived = metrics.model_copy(deep=True) if metrics is not None else MetricsRecord()
    notes = list(derived.calculation_notes)

    for _ in range(MAX_DERIVATION_PASSES):
        if not _apply_rules(derived, notes):
            break

    added = len(notes) - len(derived.calculation_notes)
    if added:
        logger.debug(f"[DerivedMetricCalculator] Derived {added} metrics")

    derived.calculation_notes = notes
    return derived
