from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from config.settings import METRICS_CONSISTENCY_TOLERANCE
from database.connection import get_session
from api.company import crud
from api.company.schemas import (
    CompanyCreate,
    CompanyResponse,
    CompanyListResponse,
    StoredMetricsResponse,
)
from services.enrichment import load_metrics
from services.metrics import check_consistency

router = APIRouter()


@router.post("", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
def create_company(
    data: CompanyCreate,
    session: Session = Depends(get_session),
):
    """Create a new company."""
    existing = crud.get_company_by_name(session, data.name)
    if existing:
        raise HTTPException(
            status_code=400,
            detail="A company with this name already exists"
        )

    return crud.create_company(session, data)


@router.get("", response_model=CompanyListResponse)
def list_companies(
    skip: int = 0,
    limit: int = 100,
    session: Session = Depends(get_session),
):
    """List companies."""
    companies = crud.get_companies(session, skip, limit)
    total = crud.get_companies_count(session)
    return CompanyListResponse(companies=companies, total=total)


@router.get("/{company_id}", response_model=CompanyResponse)
def get_company(
    company_id: str,
    session: Session = Depends(get_session),
):
    """Get company details."""
    company = crud.get_company(session, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.get("/{company_id}/metrics", response_model=StoredMetricsResponse)
def get_company_metrics(
    company_id: str,
    session: Session = Depends(get_session),
):
    """Get the company's canonical metrics record with any consistency discrepancies."""
    company = crud.get_company(session, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    stored = load_metrics(session, company_id)
    if not stored.exists:
        raise HTTPException(status_code=404, detail="No metrics recorded for this company yet")

    discrepancies = check_consistency(stored.record, METRICS_CONSISTENCY_TOLERANCE)
    return StoredMetricsResponse(
        company_id=company_id,
        metrics=stored.record.to_json_dict(),
        last_updated=stored.last_updated,
        discrepancies=[d.model_dump() for d in discrepancies],
    )
