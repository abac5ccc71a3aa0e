# sfa_portal/models/portal.py
from typing import Optional
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import IndexModel, DESCENDING

from .member import utc_now

REGISTRATION_SETTING_ID = "registration"


class RegistrationSetting(Document):
    id: str = REGISTRATION_SETTING_ID
    is_open: bool = False
    last_updated: datetime = Field(default_factory=utc_now)
    updated_by: Optional[str] = None

    class Settings:
        name = "config"

    class Update(BaseModel):
        is_open: bool

    class Response(BaseModel):
        is_open: bool
        last_updated: Optional[datetime] = None
        updated_by: Optional[str] = None


class Announcement(Document):
    title: str
    message: str
    created_by: str  # uid
    created_by_name: str = "Admin"
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "announcements"
        indexes = [
            IndexModel([("created_at", DESCENDING)], name="announcement_created_at_index"),
        ]

    class Create(BaseModel):
        title: str = Field(..., max_length=200)
        message: str = Field(..., max_length=5000)

    class Response(BaseModel):
        id: str
        title: str
        message: str
        created_by: str
        created_by_name: str
        created_at: datetime

    def to_response(self) -> "Announcement.Response":
        return Announcement.Response(id=str(self.id), **self.model_dump(exclude={"id", "revision_id", "is_active"}))
