"""
Stateless metric extraction endpoint.
"""
from typing import Any, Dict, List, Union

from fastapi import APIRouter
from pydantic import BaseModel

from config.settings import METRICS_CONSISTENCY_TOLERANCE
from services.metrics import check_consistency, extract_all_metrics, hash_input_data
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# Request/Response Models
class ExtractMetricsRequest(BaseModel):
    input: Union[str, Dict[str, Any]]


class ExtractMetricsResponse(BaseModel):
    metrics: dict
    discrepancies: List[dict]
    input_hash: str


@router.post("/extract", response_model=ExtractMetricsResponse)
def extract_metrics(request: ExtractMetricsRequest):
    """
    Extract, derive and validate metrics from free text or a structured payload.
    Nothing is stored.
    """
    metrics = extract_all_metrics(request.input)
    discrepancies = check_consistency(metrics, METRICS_CONSISTENCY_TOLERANCE)

    logger.info(
        f"[MetricsAPI] Extracted {len(metrics.known_metrics())} metrics "
        f"({len(discrepancies)} discrepancies) from {type(request.input).__name__} input"
    )

    return ExtractMetricsResponse(
        metrics=metrics.to_json_dict(),
        discrepancies=[d.model_dump() for d in discrepancies],
        input_hash=hash_input_data(request.input),
    )
