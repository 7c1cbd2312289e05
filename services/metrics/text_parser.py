"""
Text Metric Parser
Pulls financial metrics out of founder/VC free text with ordered regex
alternatives per metric. The first pattern that matches wins; later
patterns for the same metric are never consulted.
"""
import re
from typing import Any, Callable, List, Optional, Tuple

from services.metrics.models import MetricsRecord, SourceConfidence
from services.metrics.normalization import detect_currency, is_usable_number, normalize_number
from utils.logger import get_logger

logger = get_logger(__name__)

TEXT_SOURCE = "text"

# Longer digit runs are never a count or a percentage
MAX_DIGITS = 15

# Customer counts at or above this are treated as false positives (phone numbers etc.)
MAX_CUSTOMER_COUNT = 10000

_CUR = r"[\$€£]?\s*"
_AMOUNT = r"(?<![\d.])(\d[\d,]*(?:\.\d+)?)"
_SUFFIX = r"\s*(million|billion|k|m|b)?\b"
_PCT = r"(?<![\d.])(\d+(?:\.\d+)?)\s*%"
# Words allowed between a label and its number ("ARR is $1.2M", "valued at 10M")
_LINK = (
    r"(?:\s*(?::|=|~|\bis\b|\bwas\b|\bof\b|\bat\b|\breached\b|\bhit\b|"
    r"\baround\b|\babout\b|\bapproximately\b|\bcurrently\b))*\s*"
)


def _labelled_amount(label: str) -> str:
    return rf"\b(?:{label}){_LINK}{_CUR}{_AMOUNT}{_SUFFIX}"


def _prefixed_amount(label: str) -> str:
    return rf"[\$€£]{_AMOUNT}{_SUFFIX}\s*\b(?:{label})\b"


def _bare_amount(label: str) -> str:
    return rf"{_AMOUNT}{_SUFFIX}\s*\b(?:{label})\b"


def _compile(*patterns: str) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def _amount(match: re.Match) -> Optional[int]:
    return normalize_number(match.group(1), match.group(2) if match.re.groups > 1 else None)


def _percent(match: re.Match) -> Optional[float]:
    value = float(match.group(1))
    return value if is_usable_number(value) else None


def _count(match: re.Match) -> Optional[int]:
    if len(match.group(1)) > MAX_DIGITS:
        return None
    return int(match.group(1))


def _customer_count(match: re.Match) -> Optional[int]:
    count = _count(match)
    if count is None:
        return None
    if 0 < count < MAX_CUSTOMER_COUNT:
        return count
    return None


# (field, note label, patterns, value reader)
TEXT_PATTERNS: List[Tuple[str, str, List[re.Pattern], Callable[[re.Match], Any]]] = [
    ("arr", "ARR", _compile(
        _labelled_amount(r"ARR|annual recurring revenue"),
        _prefixed_amount(r"ARR|annual recurring revenue"),
        _bare_amount(r"ARR"),
    ), _amount),
    ("mrr", "MRR", _compile(
        _labelled_amount(r"MRR|monthly recurring revenue"),
        _prefixed_amount(r"MRR|monthly recurring revenue"),
        _bare_amount(r"MRR"),
    ), _amount),
    ("acv", "ACV", _compile(
        _labelled_amount(r"ACV|annual contract value"),
        _prefixed_amount(r"ACV|annual contract value"),
        _bare_amount(r"ACV"),
    ), _amount),
    ("customers", "Customer count", _compile(
        r"(?<![\d,.])(\d+)\s*(?:paying\s+)?(?:customers?|clients?|users?|accounts?|enterprises?)",
        r"\b(?:customers?|clients?|users?|accounts?)[:\s]*(\d+)",
        r"\b(?:signed|closed|acquired)\s+(\d+)\s*(?:deals?|contracts?|customers?|clients?)",
    ), _customer_count),
    ("ltv", "LTV", _compile(
        _labelled_amount(r"LTV|customer lifetime value|lifetime value"),
        _prefixed_amount(r"LTV"),
    ), _amount),
    ("cac", "CAC", _compile(
        _labelled_amount(r"CAC|customer acquisition cost"),
        _prefixed_amount(r"CAC"),
    ), _amount),
    ("churn_rate", "Churn rate", _compile(
        rf"\b(?:churn(?:\s+rate)?|monthly churn){_LINK}{_PCT}",
        rf"{_PCT}\s*(?:monthly\s+)?churn",
    ), _percent),
    ("growth_rate", "Growth rate", _compile(
        rf"\b(?:growth(?:\s+rate)?|MoM growth|monthly growth){_LINK}{_PCT}",
        rf"{_PCT}\s*(?:growth|MoM|monthly growth)",
        rf"\bgrowing\s+(?:at\s+)?{_PCT}",
    ), _percent),
    ("burn_rate", "Burn rate", _compile(
        _labelled_amount(r"burn(?:\s+rate)?|monthly burn"),
        rf"\bburning\s*{_CUR}{_AMOUNT}{_SUFFIX}\s*(?:per month|monthly|/month)?",
    ), _amount),
    ("runway", "Runway", _compile(
        r"(?<![\d.])(\d+)\s*months?\s*(?:of\s+)?runway",
        rf"\brunway{_LINK}(\d+)\s*months?",
    ), _count),
    ("revenue", "Revenue", _compile(
        _labelled_amount(r"revenue|sales"),
    ), _amount),
    ("valuation", "Valuation", _compile(
        _labelled_amount(r"valuation|valued"),
        _prefixed_amount(r"valuation|pre-money|post-money"),
    ), _amount),
]


def extract_metrics_from_text(text: Any) -> MetricsRecord:
    """
    Extract metrics from free text.

    Empty or non-string input gives an empty record. Otherwise the record
    always carries a detected currency; when at least one metric is found it
    is tagged low confidence and carries one note per metric naming the
    matched text.
    """
    metrics = MetricsRecord()
    if not text or not isinstance(text, str):
        return metrics

    metrics.currency = detect_currency(text)
    notes: List[str] = []

    for field, label, patterns, read_value in TEXT_PATTERNS:
        # Generic revenue would double count ARR/MRR under another name
        if field == "revenue" and (metrics.arr or metrics.mrr):
            continue

        for pattern in patterns:
            match = pattern.search(text)
            if not match:
                continue
            value = read_value(match)
            if value is None:
                continue
            metrics.set_metric(field, value, SourceConfidence.LOW, TEXT_SOURCE)
            notes.append(f"{label} extracted from text: {match.group(0).strip()}")
            break

    if notes:
        metrics.source_confidence = SourceConfidence.LOW
        metrics.calculation_notes = notes
        logger.debug(f"[TextMetricParser] Extracted {len(notes)} metrics from {len(text)} chars")

    return metrics
