from sqlmodel import Session, select

from database.models.profile import ProfileEnrichment
from api.enrichment.schemas import EnrichmentCreate
from services.metrics import hash_input_data


def create_enrichment(session: Session, company_id: str, data: EnrichmentCreate) -> ProfileEnrichment:
    """Queue an enrichment for a company."""
    enrichment = ProfileEnrichment(
        company_id=company_id,
        source_type=data.source_type,
        source_tool=data.source_tool,
        input_data=data.input_data,
        input_hash=hash_input_data(data.input_data),
        target_section_hint=data.target_section_hint,
    )
    session.add(enrichment)
    session.commit()
    session.refresh(enrichment)
    return enrichment


def get_pending_enrichments(session: Session, company_id: str) -> list[ProfileEnrichment]:
    """Get unprocessed enrichments for a company, newest first."""
    return list(session.exec(
        select(ProfileEnrichment)
        .where(
            ProfileEnrichment.company_id == company_id,
            ProfileEnrichment.processed == False,  # noqa: E712
        )
        .order_by(ProfileEnrichment.created_at.desc())
    ).all())
