from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class CompanyCreate(BaseModel):
    name: str


class CompanyResponse(BaseModel):
    id: str
    name: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CompanyListResponse(BaseModel):
    companies: list[CompanyResponse]
    total: int


class StoredMetricsResponse(BaseModel):
    company_id: str
    metrics: dict
    last_updated: Optional[str] = None
    discrepancies: list
