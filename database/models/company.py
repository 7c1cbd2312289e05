import uuid
from datetime import datetime
from sqlmodel import SQLModel, Field


class Company(SQLModel, table=True):
    """A startup being profiled. Memo responses and enrichments hang off it."""
    __tablename__ = "companies"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(max_length=255, unique=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
