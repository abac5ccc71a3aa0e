# sfa_portal/core/accounts.py
"""
Founder-only account mutations spanning the auth provider and the two
member collections (`users`, `users_by_uid`).

These are NOT atomic across stores. The credential is changed first; if a
later document step fails the error carries the completed/failed steps so an
operator can reconcile by hand (see reconcile_accounts.py). Nothing is rolled
back automatically.
"""
import re
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from sfa_portal.core.auth_provider import AuthProvider, CredentialNotFound, EmailAlreadyInUse, auth_provider
from sfa_portal.core.errors import (
    AlreadyExists,
    Internal,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    Unauthenticated,
)
from sfa_portal.models.audit import AuditLog
from sfa_portal.models.enum import AuditAction, Capability, ROLE_CAPABILITIES
from sfa_portal.models.member import Member, MemberByUid

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class DeleteAccountPayload(BaseModel):
    uid: Optional[str] = None
    sfa_id: Optional[str] = Field(None, alias="sfaId")
    reason: Optional[str] = None

    class Config:
        populate_by_name = True


class UpdateEmailPayload(BaseModel):
    uid: Optional[str] = None
    new_email: Optional[str] = Field(None, alias="newEmail")
    old_email: Optional[str] = Field(None, alias="oldEmail")

    class Config:
        populate_by_name = True


class StepTracker:
    """Mencatat langkah mutasi yang sudah selesai untuk keperluan rekonsiliasi."""

    def __init__(self, operation: str, target_uid: str):
        self.operation = operation
        self.target_uid = target_uid
        self.completed: List[str] = []

    def done(self, step: str) -> None:
        self.completed.append(step)
        logger.info(f"[{self.operation}] uid={self.target_uid} step '{step}' completed.")

    def failure(self, step: str, exc: Exception, message: str) -> Internal:
        logger.error(
            f"[{self.operation}] uid={self.target_uid} FAILED at '{step}' after {self.completed}: {exc}. "
            f"Manual reconciliation may be required.",
            exc_info=True,
        )
        return Internal(
            f"{message} Failed at step '{step}': {exc}",
            details={"completedSteps": list(self.completed), "failedStep": step, "partial": bool(self.completed)},
        )


async def _require_founder(caller_uid: Optional[str]) -> MemberByUid:
    if not caller_uid:
        raise Unauthenticated("User must be authenticated to perform this action.")
    caller = await MemberByUid.get(caller_uid)
    if caller is None or caller.disabled or Capability.MANAGE_ACCOUNTS not in ROLE_CAPABILITIES[caller.role]:
        logger.warning(f"Permission denied for caller uid '{caller_uid}' on founder-only operation.")
        raise PermissionDenied("Only founders can perform this action.")
    return caller


async def delete_user_account(
    caller_uid: Optional[str],
    payload: DeleteAccountPayload,
    provider: AuthProvider = auth_provider,
) -> dict:
    caller = await _require_founder(caller_uid)

    uid = (payload.uid or "").strip()
    sfa_id = (payload.sfa_id or "").strip().upper()
    if not uid or not sfa_id:
        raise InvalidArgument("UID and SFA ID are required.")
    if uid == caller_uid:
        raise InvalidArgument("You cannot delete your own account.")

    # Snapshot untuk audit sebelum apa pun dihapus
    snapshot = await Member.find_one(Member.uid == uid)
    if snapshot is not None and snapshot.id != sfa_id:
        raise InvalidArgument(
            "UID and SFA ID belong to different members.",
            details={"uid": uid, "sfaId": sfa_id, "profileSfaId": snapshot.id},
        )
    if snapshot is None:
        owner = await Member.get(sfa_id)
        if owner is not None and owner.uid != uid:
            raise InvalidArgument(
                "UID and SFA ID belong to different members.",
                details={"uid": uid, "sfaId": sfa_id},
            )
        logger.warning(f"No profile found for uid '{uid}' before deletion; continuing.")

    tracker = StepTracker("deleteUserAccount", uid)
    try:
        await provider.delete_user(uid)
        tracker.done("auth_credential")
    except CredentialNotFound:
        logger.warning(f"Credential for uid '{uid}' already absent; continuing with document cleanup.")
        tracker.done("auth_credential_absent")
    except Exception as e:
        logger.error(f"Failed to delete credential for uid '{uid}': {e}", exc_info=True)
        raise Internal(f"Failed to delete user: {e}", details={"completedSteps": [], "failedStep": "auth_credential"}) from e

    partial_message = "Auth credential deleted but document state is uncertain."
    step = "member_profile"
    try:
        await Member.get_motor_collection().delete_one({"_id": sfa_id})
        tracker.done(step)

        step = "member_mirror"
        await MemberByUid.get_motor_collection().delete_one({"_id": uid})
        tracker.done(step)

        step = "audit_log"
        await AuditLog(
            action=AuditAction.ACCOUNT_DELETED,
            performed_by=caller_uid,
            performed_by_sfa_id=caller.sfa_id,
            target_uid=uid,
            target_sfa_id=sfa_id,
            email=snapshot.email if snapshot else None,
            full_name=snapshot.full_name if snapshot else None,
            reason=payload.reason,
        ).insert()
        tracker.done(step)
    except Exception as e:
        raise tracker.failure(step, e, partial_message) from e

    logger.warning(f"Account {sfa_id} (uid={uid}) deleted by founder '{caller.sfa_id}'.")
    return {
        "success": True,
        "message": "User deleted successfully from Auth and database",
        "uid": uid,
        "deletedSfaId": sfa_id,
    }


async def update_user_email(
    caller_uid: Optional[str],
    payload: UpdateEmailPayload,
    provider: AuthProvider = auth_provider,
) -> dict:
    caller = await _require_founder(caller_uid)

    uid = (payload.uid or "").strip()
    new_email = (payload.new_email or "").strip().lower()
    if not uid or not new_email:
        raise InvalidArgument("UID and new email are required.")
    if not EMAIL_PATTERN.match(new_email):
        raise InvalidArgument("Invalid email format.")

    # Cek apakah email baru sudah dipakai akun lain
    try:
        existing = await provider.get_user_by_email(new_email)
        if existing.id != uid:
            raise AlreadyExists("This email is already registered to another user.")
    except CredentialNotFound:
        pass
    except AlreadyExists:
        raise
    except Exception as e:
        logger.error(f"Email availability probe failed for '{new_email}': {e}", exc_info=True)
        raise Internal(f"Failed to update email: {e}") from e

    tracker = StepTracker("updateUserEmail", uid)
    try:
        credential = await provider.get_user(uid)
        stored_old_email = credential.email
        await provider.update_email(uid, new_email)
        tracker.done("auth_credential")
    except CredentialNotFound:
        raise NotFound(f"No account exists for uid '{uid}'.")
    except EmailAlreadyInUse:
        raise AlreadyExists("This email is already registered to another user.")
    except Exception as e:
        logger.error(f"Failed to update credential email for uid '{uid}': {e}", exc_info=True)
        raise Internal(f"Failed to update email: {e}", details={"completedSteps": [], "failedStep": "auth_credential"}) from e

    old_email = payload.old_email
    now = datetime.now(timezone.utc)
    step = "member_profile"
    try:
        profile = await Member.find_one(Member.uid == uid)
        if profile is not None:
            previous = old_email or profile.email
            await Member.get_motor_collection().update_one(
                {"_id": profile.id},
                {"$set": {
                    "email": new_email,
                    "previous_email": previous,
                    "updated_at": now,
                    "updated_by": caller.sfa_id or caller_uid,
                }},
            )
            old_email = previous
            tracker.done(step)
        else:
            logger.warning(f"No profile document for uid '{uid}'; skipping profile update.")

        step = "member_mirror"
        mirror_result = await MemberByUid.get_motor_collection().update_one(
            {"_id": uid},
            {"$set": {"email": new_email, "updated_at": now}},
        )
        if mirror_result.matched_count == 0:
            logger.warning(f"No mirror document for uid '{uid}'; skipping mirror update.")
        else:
            tracker.done(step)

        step = "audit_log"
        await AuditLog(
            action=AuditAction.EMAIL_UPDATE,
            performed_by=caller_uid,
            performed_by_sfa_id=caller.sfa_id,
            target_uid=uid,
            target_sfa_id=profile.id if profile else None,
            old_email=old_email or stored_old_email,
            new_email=new_email,
        ).insert()
        tracker.done(step)
    except Exception as e:
        raise tracker.failure(step, e, "Auth email updated but member documents may be stale.") from e

    return {
        "success": True,
        "message": "Email updated successfully in both Auth and database",
        "oldEmail": old_email or stored_old_email,
        "newEmail": new_email,
    }
