from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from database.connection import get_session
from api.company import crud as company_crud
from api.enrichment import crud
from api.enrichment.schemas import (
    EnrichmentCreate,
    EnrichmentResponse,
    EnrichmentListResponse,
    EnrichmentSyncResponse,
)
from services.enrichment import ProfileEnrichmentSyncService
from services.llm_client import LLMClient, get_llm_client
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _require_company(session: Session, company_id: str):
    company = company_crud.get_company(session, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.post("/{company_id}/enrichments", response_model=EnrichmentResponse, status_code=status.HTTP_201_CREATED)
def add_enrichment(
    company_id: str,
    data: EnrichmentCreate,
    session: Session = Depends(get_session),
):
    """Queue a new enrichment (tool output, founder answer, parsed document)."""
    _require_company(session, company_id)
    return crud.create_enrichment(session, company_id, data)


@router.get("/{company_id}/enrichments", response_model=EnrichmentListResponse)
def list_pending_enrichments(
    company_id: str,
    session: Session = Depends(get_session),
):
    """List enrichments not yet synced into the profile."""
    _require_company(session, company_id)
    enrichments = crud.get_pending_enrichments(session, company_id)
    return EnrichmentListResponse(enrichments=enrichments, total=len(enrichments))


@router.post("/{company_id}/enrichments/sync", response_model=EnrichmentSyncResponse)
def sync_enrichments(
    company_id: str,
    session: Session = Depends(get_session),
    llm_client: LLMClient = Depends(get_llm_client),
):
    """Fold pending enrichments into the company's metrics and profile sections."""
    _require_company(session, company_id)
    logger.info(f"[EnrichmentAPI] Sync requested for company {company_id}")

    try:
        result = ProfileEnrichmentSyncService(session, llm_client=llm_client).sync_company(company_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return EnrichmentSyncResponse(**result)
