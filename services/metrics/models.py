"""Canonical metrics record and its enums."""
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class Currency(str, Enum):
    """Currencies recognised in founder/VC inputs"""
    USD = "USD"
    GBP = "GBP"
    EUR = "EUR"


DEFAULT_CURRENCY = Currency.EUR


class SourceConfidence(str, Enum):
    """Provenance quality of a metric value (low < medium < high)"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


CONFIDENCE_ORDER = {
    SourceConfidence.LOW: 1,
    SourceConfidence.MEDIUM: 2,
    SourceConfidence.HIGH: 3,
}


class FieldSource(BaseModel):
    """Where a single metric value came from."""
    confidence: SourceConfidence
    source: str


# Every numeric metric field, in canonical order
METRIC_FIELDS = (
    "arr",
    "mrr",
    "acv",
    "customers",
    "ltv",
    "cac",
    "churn_rate",
    "growth_rate",
    "burn_rate",
    "runway",
    "revenue",
    "valuation",
    "ltvcac_ratio",
    "payback_months",
)


Number = Union[int, float]


class MetricsRecord(BaseModel):
    """
    Normalized financial metrics for one company.

    Every metric is optional. A metric counts as known only when it holds a
    truthy value, so 0 and None are both treated as absent by derivation.
    JSON field names are camelCase (churnRate, ltvcacRatio, ...).
    """
    arr: Optional[Number] = None
    mrr: Optional[Number] = None
    acv: Optional[Number] = None
    customers: Optional[Number] = None
    ltv: Optional[Number] = None
    cac: Optional[Number] = None
    churn_rate: Optional[Number] = None
    growth_rate: Optional[Number] = None
    burn_rate: Optional[Number] = None
    runway: Optional[Number] = None
    revenue: Optional[Number] = None
    valuation: Optional[Number] = None
    ltvcac_ratio: Optional[Number] = None
    payback_months: Optional[Number] = None

    currency: Optional[Currency] = None
    source_confidence: Optional[SourceConfidence] = None
    calculation_notes: List[str] = Field(default_factory=list)
    field_sources: Dict[str, FieldSource] = Field(default_factory=dict)

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def known_metrics(self) -> Dict[str, float]:
        """Metric fields holding a truthy value."""
        return {name: getattr(self, name) for name in METRIC_FIELDS if getattr(self, name)}

    def has_metrics(self) -> bool:
        return any(getattr(self, name) is not None for name in METRIC_FIELDS)

    def field_confidence(self, name: str) -> SourceConfidence:
        """Confidence of one field, falling back to the record tag, then low."""
        source = self.field_sources.get(name)
        if source:
            return source.confidence
        return self.source_confidence or SourceConfidence.LOW

    def set_metric(self, name: str, value: float, confidence: SourceConfidence, source: str) -> None:
        setattr(self, name, value)
        self.field_sources[name] = FieldSource(confidence=confidence, source=source)

    def to_json_dict(self) -> dict:
        """JSON-ready dict with camelCase keys and absent fields dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
