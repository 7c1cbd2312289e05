"""
Persistence for the canonical metrics record.

The record is stored as JSON in the memo_responses row whose question_key is
the reserved sentinel, together with a last_updated timestamp and the hashes
of every enrichment input already folded into it.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlmodel import Session, select

from config.settings import METRICS_SENTINEL_KEY
from database.models.profile import MemoResponse, ResponseSource
from services.metrics import MetricsRecord
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class StoredMetrics:
    record: MetricsRecord
    input_hashes: List[str] = field(default_factory=list)
    last_updated: Optional[str] = None
    exists: bool = False


def _get_metrics_row(session: Session, company_id: str) -> Optional[MemoResponse]:
    return session.exec(
        select(MemoResponse).where(
            MemoResponse.company_id == company_id,
            MemoResponse.question_key == METRICS_SENTINEL_KEY,
        )
    ).first()


def load_metrics(session: Session, company_id: str) -> StoredMetrics:
    """Load the stored record, or an empty one when none exists or it is unreadable."""
    row = _get_metrics_row(session, company_id)
    if not row or not row.answer:
        return StoredMetrics(record=MetricsRecord())

    try:
        payload = json.loads(row.answer)
        record = MetricsRecord.model_validate(payload)
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning(f"[MetricsStore] Unreadable metrics record for company {company_id}, starting fresh: {e}")
        return StoredMetrics(record=MetricsRecord())

    return StoredMetrics(
        record=record,
        input_hashes=list(payload.get("inputHashes") or []),
        last_updated=payload.get("last_updated"),
        exists=True,
    )


def save_metrics(
    session: Session,
    company_id: str,
    record: MetricsRecord,
    input_hashes: List[str],
) -> MemoResponse:
    """Overwrite the stored record. The caller commits."""
    now = datetime.utcnow()
    payload = record.to_json_dict()
    payload["last_updated"] = now.isoformat()
    payload["inputHashes"] = input_hashes

    row = _get_metrics_row(session, company_id)
    if row:
        row.answer = json.dumps(payload, ensure_ascii=False)
        row.source = ResponseSource.METRICS_SYNC.value
        row.updated_at = now
    else:
        row = MemoResponse(
            company_id=company_id,
            question_key=METRICS_SENTINEL_KEY,
            answer=json.dumps(payload, ensure_ascii=False),
            source=ResponseSource.METRICS_SYNC.value,
        )
    session.add(row)
    logger.info(f"[MetricsStore] Saved metrics for company {company_id} ({len(record.known_metrics())} metrics)")
    return row
