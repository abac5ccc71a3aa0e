# sfa_portal/models/enum.py
from enum import Enum


class MemberRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"
    FOUNDER = "founder"


class Capability(str, Enum):
    REVIEW_BENEFICIARY = "review_beneficiary"  # Vote pada permohonan bantuan
    MANAGE_PORTAL = "manage_portal"            # Pengumuman, pengaturan, daftar anggota
    MANAGE_ACCOUNTS = "manage_accounts"        # Hapus akun, ganti email, ubah role


ROLE_CAPABILITIES = {
    MemberRole.MEMBER: frozenset(),
    MemberRole.ADMIN: frozenset({Capability.REVIEW_BENEFICIARY, Capability.MANAGE_PORTAL}),
    MemberRole.FOUNDER: frozenset(Capability),
}


def roles_with(capability: Capability) -> list:
    return [role for role, caps in ROLE_CAPABILITIES.items() if capability in caps]


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VoteAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ApprovalAction(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class BeneficiaryDocumentType(str, Enum):
    VERIFICATION = "verification"
    PAYSLIP = "payslip"
    APPLICATION = "application"


class AuditAction(str, Enum):
    ACCOUNT_DELETED = "account_deleted"
    EMAIL_UPDATE = "email_update"
