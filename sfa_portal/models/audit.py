# sfa_portal/models/audit.py
from typing import Optional
from datetime import datetime

from beanie import Document
from pydantic import Field
from pymongo import IndexModel, ASCENDING, DESCENDING

from .enum import AuditAction
from .member import utc_now


class AuditLog(Document):
    """Catatan audit untuk mutasi akun oleh founder. Append-only."""
    action: AuditAction
    performed_by: str  # uid founder
    performed_by_sfa_id: Optional[str] = None
    target_uid: str
    target_sfa_id: Optional[str] = None
    # Snapshot untuk penghapusan akun
    email: Optional[str] = None
    full_name: Optional[str] = None
    reason: Optional[str] = None
    # Perubahan email
    old_email: Optional[str] = None
    new_email: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "audit_logs"
        indexes = [
            IndexModel([("target_uid", ASCENDING)], name="audit_target_uid_index"),
            IndexModel([("timestamp", DESCENDING)], name="audit_timestamp_index"),
        ]
