# sfa_portal/models/counter.py
from typing import Optional
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, Field


class SequenceCounter(Document):
    """Holds the last issued value of a named sequence."""
    # _id adalah nama sequence (misal "sfa_id_counter")
    id: str
    current: int = 0
    last_updated: Optional[datetime] = None
    initialized_at: Optional[datetime] = None
    initialized_by: Optional[str] = None

    class Settings:
        name = "counters"

    class Initialize(BaseModel):
        starting_number: int = Field(..., ge=0, description="Last SFA number already issued; next allocation is +1")

    class Status(BaseModel):
        initialized: bool
        current: Optional[int] = None
        next_sfa_id: Optional[str] = None
