from typing import Optional
from sqlmodel import Session, select, func

from database.models.company import Company
from api.company.schemas import CompanyCreate


def create_company(session: Session, data: CompanyCreate) -> Company:
    """Create a new company."""
    company = Company(name=data.name)
    session.add(company)
    session.commit()
    session.refresh(company)
    return company


def get_company(session: Session, company_id: str) -> Optional[Company]:
    """Get company by ID."""
    return session.get(Company, company_id)


def get_company_by_name(session: Session, name: str) -> Optional[Company]:
    """Get company by name."""
    return session.exec(
        select(Company).where(Company.name == name)
    ).first()


def get_companies(session: Session, skip: int = 0, limit: int = 100) -> list[Company]:
    """Get all companies with pagination."""
    return list(session.exec(
        select(Company)
        .order_by(Company.name)
        .offset(skip)
        .limit(limit)
    ).all())


def get_companies_count(session: Session) -> int:
    """Get total count of companies."""
    return session.exec(select(func.count(Company.id))).one()
