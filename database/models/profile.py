"""Database models for company profile answers and the enrichment queue"""
import uuid
from datetime import datetime
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Text, JSON, UniqueConstraint
from typing import Optional, Dict, Any
from enum import Enum


class ProfileSection(str, Enum):
    """Memo profile sections an enrichment can feed"""
    PROBLEM_CORE = "problem_core"
    SOLUTION_CORE = "solution_core"
    TARGET_CUSTOMER = "target_customer"
    COMPETITIVE_MOAT = "competitive_moat"
    TEAM_STORY = "team_story"
    BUSINESS_MODEL = "business_model"
    TRACTION_PROOF = "traction_proof"
    VISION_ASK = "vision_ask"


SECTION_LABELS = {
    ProfileSection.PROBLEM_CORE: "Problem",
    ProfileSection.SOLUTION_CORE: "Solution",
    ProfileSection.TARGET_CUSTOMER: "Target Customer",
    ProfileSection.COMPETITIVE_MOAT: "Competition",
    ProfileSection.TEAM_STORY: "Team",
    ProfileSection.BUSINESS_MODEL: "Business Model",
    ProfileSection.TRACTION_PROOF: "Traction",
    ProfileSection.VISION_ASK: "Vision & Ask",
}


class ResponseSource(str, Enum):
    """Who wrote a memo response"""
    FOUNDER = "founder"
    ENRICHMENT_SYNC = "enrichment_sync"
    METRICS_SYNC = "metrics_sync"


class MemoResponse(SQLModel, table=True):
    """
    One answer per (company, question_key).
    A reserved question_key holds the canonical metrics record as JSON.
    """
    __tablename__ = "memo_responses"
    __table_args__ = (UniqueConstraint("company_id", "question_key"),)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    company_id: str = Field(foreign_key="companies.id", index=True)
    question_key: str = Field(max_length=200, index=True)
    answer: Optional[str] = Field(default=None, sa_column=Column(Text))
    source: str = Field(default=ResponseSource.FOUNDER.value, max_length=50)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ProfileEnrichment(SQLModel, table=True):
    """
    A pending observation about a company (tool output, founder answer,
    parsed deck) waiting to be folded into its profile and metrics.
    """
    __tablename__ = "profile_enrichment_queue"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    company_id: str = Field(foreign_key="companies.id", index=True)

    source_type: str = Field(max_length=100, index=True)  # e.g. "tam_calculator", "improve_score"
    source_tool: Optional[str] = Field(default=None, max_length=100)
    input_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    input_hash: Optional[str] = Field(default=None, max_length=32, index=True)
    target_section_hint: Optional[str] = Field(default=None, max_length=100)

    processed: bool = Field(default=False, index=True)
    processed_at: Optional[datetime] = Field(default=None)
    metrics_applied: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
