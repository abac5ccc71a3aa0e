# sfa_portal/models/beneficiary.py
from typing import Optional, List
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, Field
from pymongo import IndexModel, ASCENDING, DESCENDING

from .enum import RequestStatus, ApprovalAction, VoteAction
from .member import utc_now


class BeneficiaryRequest(Document):
    # --- Data pemohon ---
    user_id: str  # uid pemohon
    user_name: str
    sfa_id: str
    cms_id: str
    lobby: str
    email: str
    phone_number: str
    description: str

    # --- Dokumen (URL dari blob store) ---
    verification_doc_url: Optional[str] = None
    pay_slip_url: Optional[str] = None
    application_form_url: Optional[str] = None

    # --- Status persetujuan ---
    status: RequestStatus = Field(default=RequestStatus.PENDING)
    approval_count: int = Field(default=0, ge=0)
    total_approvals: int = Field(..., ge=0)
    approved_by: List[str] = Field(default_factory=list)
    rejected_by: List[str] = Field(default_factory=list)
    version: int = Field(default=0)  # token optimistic concurrency

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "beneficiary_requests"
        indexes = [
            IndexModel([("user_id", ASCENDING), ("created_at", DESCENDING)], name="request_user_created_index"),
            IndexModel([("created_at", DESCENDING)], name="request_created_at_index"),
            IndexModel([("status", ASCENDING)], name="request_status_index"),
        ]

    @property
    def is_complete(self) -> bool:
        return bool(self.verification_doc_url and self.pay_slip_url and self.application_form_url)

    @property
    def is_terminal(self) -> bool:
        return self.status != RequestStatus.PENDING

    def has_voted(self, admin_id: str) -> bool:
        return admin_id in self.approved_by or admin_id in self.rejected_by

    # --- Pydantic Schemas ---
    class Vote(BaseModel):
        action: VoteAction
        remarks: Optional[str] = Field(None, max_length=1000)

    class Response(BaseModel):
        id: str
        user_id: str
        user_name: str
        sfa_id: str
        cms_id: str
        lobby: str
        email: str
        phone_number: str
        description: str
        verification_doc_url: Optional[str] = None
        pay_slip_url: Optional[str] = None
        application_form_url: Optional[str] = None
        is_complete: bool
        status: RequestStatus
        approval_count: int
        total_approvals: int
        approved_by: List[str]
        rejected_by: List[str]
        created_at: datetime
        updated_at: datetime

        class Config:
            use_enum_values = True

    def to_response(self) -> "BeneficiaryRequest.Response":
        data = self.model_dump(exclude={"id", "revision_id", "version"})
        return BeneficiaryRequest.Response(id=str(self.id), is_complete=self.is_complete, **data)


class BeneficiaryApproval(Document):
    """Jejak audit satu suara admin. Append-only."""
    request_id: str
    admin_id: str
    admin_name: str
    action: ApprovalAction
    remarks: str = ""
    timestamp: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "beneficiary_approvals"
        indexes = [
            IndexModel([("request_id", ASCENDING), ("timestamp", DESCENDING)], name="approval_request_timestamp_index"),
        ]

    class Response(BaseModel):
        id: str
        request_id: str
        admin_id: str
        admin_name: str
        action: ApprovalAction
        remarks: str
        timestamp: datetime

        class Config:
            use_enum_values = True

    def to_response(self) -> "BeneficiaryApproval.Response":
        return BeneficiaryApproval.Response(id=str(self.id), **self.model_dump(exclude={"id", "revision_id"}))
