# sfa_portal/models/credential.py
from uuid import uuid4
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import IndexModel, ASCENDING

from .member import utc_now


def new_uid() -> str:
    return uuid4().hex


class AuthCredential(Document):
    """Kredensial login milik auth provider (terpisah dari profil anggota)."""
    id: str = Field(default_factory=new_uid)  # uid
    email: str
    hashed_password: str
    disabled: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "auth_credentials"
        indexes = [
            IndexModel([("email", ASCENDING)], name="credential_email_unique_index", unique=True),
        ]


class Token(BaseModel):
    access_token: str
    token_type: str
