# sfa_portal/models/member.py
from typing import Optional
from datetime import datetime, timezone

from beanie import Document
from pydantic import BaseModel, Field, EmailStr
from pymongo import IndexModel, ASCENDING

from .enum import MemberRole, ROLE_CAPABILITIES, Capability


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Member(Document):
    """Profil anggota, disimpan dengan SFA ID sebagai _id."""
    id: str  # SFA ID, misal "SFA0042"
    uid: str
    email: str
    full_name: str
    cms_id: str
    lobby_id: str
    phone_number: str
    emergency_number: Optional[str] = None
    role: MemberRole = Field(default=MemberRole.MEMBER)
    disabled: bool = Field(default=False)
    disabled_at: Optional[datetime] = None
    disabled_by: Optional[str] = None
    previous_email: Optional[str] = None
    updated_by: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("uid", ASCENDING)], name="member_uid_index", unique=True),
            IndexModel([("email", ASCENDING)], name="member_email_index"),
            IndexModel([("cms_id", ASCENDING)], name="member_cms_id_index"),
            IndexModel([("role", ASCENDING)], name="member_role_index"),
        ]

    @property
    def sfa_id(self) -> str:
        return self.id

    def can(self, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES[self.role]

    # --- Pydantic Schemas ---
    class Register(BaseModel):
        email: EmailStr
        password: str
        full_name: str
        cms_id: str
        lobby_id: str
        phone_number: str
        emergency_number: Optional[str] = None

    class Response(BaseModel):
        sfa_id: str
        uid: str
        email: str
        full_name: str
        cms_id: str
        lobby_id: str
        phone_number: str
        emergency_number: Optional[str] = None
        role: MemberRole
        disabled: bool
        created_at: datetime
        updated_at: datetime

        class Config:
            use_enum_values = True

    class RoleUpdate(BaseModel):
        role: MemberRole

    def to_response(self) -> "Member.Response":
        return Member.Response(sfa_id=self.id, **self.model_dump(exclude={"id", "revision_id"}))


class MemberByUid(Document):
    """Mirror profil anggota yang di-key dengan uid auth provider."""
    id: str  # uid
    sfa_id: str
    email: str
    full_name: str
    role: MemberRole = Field(default=MemberRole.MEMBER)
    disabled: bool = Field(default=False)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "users_by_uid"
        indexes = [
            IndexModel([("sfa_id", ASCENDING)], name="mirror_sfa_id_index"),
        ]

    @classmethod
    def from_member(cls, member: Member) -> "MemberByUid":
        return cls(
            id=member.uid,
            sfa_id=member.id,
            email=member.email,
            full_name=member.full_name,
            role=member.role,
            disabled=member.disabled,
            updated_at=utc_now(),
        )
