from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Dict, Any, List


class EnrichmentCreate(BaseModel):
    source_type: str
    source_tool: Optional[str] = None
    input_data: Dict[str, Any] = Field(default_factory=dict)
    target_section_hint: Optional[str] = None


class EnrichmentResponse(BaseModel):
    id: str
    company_id: str
    source_type: str
    source_tool: Optional[str] = None
    input_data: Dict[str, Any]
    input_hash: Optional[str] = None
    target_section_hint: Optional[str] = None
    processed: bool
    processed_at: Optional[datetime] = None
    metrics_applied: bool
    created_at: datetime

    class Config:
        from_attributes = True


class EnrichmentListResponse(BaseModel):
    enrichments: List[EnrichmentResponse]
    total: int


class EnrichmentSyncResponse(BaseModel):
    success: bool = True
    synced: int
    sections_updated: List[str]
    metrics: Optional[dict] = None
    discrepancies: List[dict]
