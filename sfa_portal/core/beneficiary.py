# sfa_portal/core/beneficiary.py
"""
Beneficiary assistance requests and the admin approval workflow.

Policy: a request is approved only when every reviewer counted at creation
time has approved it, while a single rejection closes it immediately.
Votes are applied with an optimistic read-check-write guarded by the
request's `version` field, so concurrent votes on one request never lose
an update and one admin can never be counted twice.
"""
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Dict, List, Optional

from beanie import PydanticObjectId
from bson import ObjectId
from loguru import logger
from pymongo import DESCENDING

from sfa_portal.core.blob_store import BlobStore
from sfa_portal.core.config import MAX_UPLOAD_BYTES, VOTE_MAX_ATTEMPTS
from sfa_portal.core.errors import (
    AlreadyVoted,
    FailedPrecondition,
    Internal,
    InvalidArgument,
    NotFound,
    RequestClosed,
    VoteConflict,
)
from sfa_portal.models.beneficiary import BeneficiaryApproval, BeneficiaryRequest
from sfa_portal.models.enum import (
    ApprovalAction,
    BeneficiaryDocumentType,
    Capability,
    RequestStatus,
    VoteAction,
    roles_with,
)
from sfa_portal.models.member import Member

DOCUMENT_URL_FIELDS = {
    BeneficiaryDocumentType.VERIFICATION: "verification_doc_url",
    BeneficiaryDocumentType.PAYSLIP: "pay_slip_url",
    BeneficiaryDocumentType.APPLICATION: "application_form_url",
}


@dataclass
class UploadedDocument:
    filename: str
    content: bytes
    content_type: Optional[str] = None


def _parse_request_id(request_id: str) -> PydanticObjectId:
    if not request_id or not ObjectId.is_valid(request_id):
        raise InvalidArgument("Invalid request ID format.")
    return PydanticObjectId(request_id)


def _validate_documents(documents: Dict[BeneficiaryDocumentType, UploadedDocument]) -> None:
    missing = [doc_type.value for doc_type in BeneficiaryDocumentType if doc_type not in documents]
    if missing:
        raise InvalidArgument(
            f"All documents are required. Missing: {', '.join(missing)}",
            details={"missing": missing},
        )
    for doc_type, document in documents.items():
        if not document.content:
            raise InvalidArgument(f"Document '{doc_type.value}' is empty.")
        if len(document.content) > MAX_UPLOAD_BYTES:
            raise InvalidArgument(
                f"Document '{doc_type.value}' exceeds the {MAX_UPLOAD_BYTES} byte limit.",
                details={"document": doc_type.value, "size": len(document.content)},
            )


async def count_reviewers() -> int:
    """Jumlah anggota aktif yang berhak memberi persetujuan."""
    reviewer_roles = [role.value for role in roles_with(Capability.REVIEW_BENEFICIARY)]
    return await Member.find({"role": {"$in": reviewer_roles}, "disabled": False}).count()


async def create_request(
    requester: Member,
    description: str,
    documents: Dict[BeneficiaryDocumentType, UploadedDocument],
    blob_store: BlobStore,
) -> BeneficiaryRequest:
    description = (description or "").strip()
    if not description:
        raise InvalidArgument("Description is required.")
    _validate_documents(documents)

    # Snapshot jumlah reviewer; perubahan admin berikutnya tidak mempengaruhi request ini
    total_approvals = await count_reviewers()
    if total_approvals == 0:
        raise FailedPrecondition("No active admins are available to review beneficiary requests.")

    now = datetime.now(timezone.utc)
    request = BeneficiaryRequest(
        user_id=requester.uid,
        user_name=requester.full_name,
        sfa_id=requester.id,
        cms_id=requester.cms_id,
        lobby=requester.lobby_id,
        email=requester.email,
        phone_number=requester.phone_number,
        description=description,
        status=RequestStatus.PENDING,
        approval_count=0,
        total_approvals=total_approvals,
        approved_by=[],
        rejected_by=[],
        created_at=now,
        updated_at=now,
    )
    await request.insert()
    logger.info(f"Beneficiary request {request.id} created by '{requester.id}' (quorum {total_approvals}).")

    urls = {}
    for doc_type, document in documents.items():
        millis = int(time.time() * 1000)
        filename = PurePath(document.filename or "document").name
        path = f"beneficiary_documents/{request.id}_{doc_type.value}_{millis}_{filename}"
        try:
            urls[DOCUMENT_URL_FIELDS[doc_type]] = await blob_store.put(path, document.content, document.content_type)
        except Exception as e:
            logger.error(f"Upload of '{doc_type.value}' failed for request {request.id}: {e}", exc_info=True)
            raise Internal(
                "Failed to upload request documents. The request was saved but is incomplete.",
                details={"request_id": str(request.id), "failed_document": doc_type.value},
            ) from e

    await BeneficiaryRequest.get_motor_collection().update_one(
        {"_id": request.id},
        {"$set": {**urls, "updated_at": datetime.now(timezone.utc)}},
    )
    return await get_request(str(request.id))


async def get_request(request_id: str) -> BeneficiaryRequest:
    request = await BeneficiaryRequest.get(_parse_request_id(request_id))
    if request is None:
        raise NotFound(f"Beneficiary request '{request_id}' not found.")
    return request


def _vote_update(request: BeneficiaryRequest, admin_id: str, action: VoteAction, now: datetime) -> dict:
    update = {"updated_at": now}
    if action == VoteAction.APPROVE:
        approval_count = request.approval_count + 1
        update["approved_by"] = request.approved_by + [admin_id]
        update["approval_count"] = approval_count
        if approval_count >= request.total_approvals:
            update["status"] = RequestStatus.APPROVED.value
    else:
        # Satu penolakan langsung final
        update["rejected_by"] = request.rejected_by + [admin_id]
        update["status"] = RequestStatus.REJECTED.value
    return update


async def cast_vote(
    request_id: str,
    admin_id: str,
    admin_name: str,
    action: VoteAction,
    remarks: Optional[str] = None,
) -> BeneficiaryRequest:
    """
    Records one admin's vote on a pending request and appends its audit record.

    Raises NotFound, AlreadyVoted, RequestClosed, FailedPrecondition (incomplete
    documents) or VoteConflict when the optimistic update keeps losing races.
    """
    oid = _parse_request_id(request_id)
    if not admin_id:
        raise InvalidArgument("Admin identifier is required.")
    action = VoteAction(action)
    collection = BeneficiaryRequest.get_motor_collection()

    for attempt in range(1, VOTE_MAX_ATTEMPTS + 1):
        request = await BeneficiaryRequest.get(oid)
        if request is None:
            raise NotFound(f"Beneficiary request '{request_id}' not found.")
        if request.has_voted(admin_id):
            raise AlreadyVoted(details={"request_id": request_id, "admin_id": admin_id})
        if request.is_terminal:
            raise RequestClosed(
                f"Request is already {request.status.value}.",
                details={"request_id": request_id, "status": request.status.value},
            )
        if not request.is_complete:
            raise FailedPrecondition("Request documents are incomplete; it cannot be reviewed yet.")

        now = datetime.now(timezone.utc)
        result = await collection.update_one(
            {"_id": oid, "version": request.version},
            {"$set": _vote_update(request, admin_id, action, now), "$inc": {"version": 1}},
        )
        if result.matched_count == 1:
            break
        logger.info(f"Vote on request {request_id} by '{admin_id}' lost a race (attempt {attempt}/{VOTE_MAX_ATTEMPTS}).")
    else:
        raise VoteConflict(details={"request_id": request_id, "attempts": VOTE_MAX_ATTEMPTS})

    approval_action = ApprovalAction.APPROVED if action == VoteAction.APPROVE else ApprovalAction.REJECTED
    try:
        await BeneficiaryApproval(
            request_id=request_id,
            admin_id=admin_id,
            admin_name=admin_name,
            action=approval_action,
            remarks=(remarks or "").strip(),
            timestamp=now,
        ).insert()
    except Exception as e:
        logger.error(
            f"Vote by '{admin_id}' on request {request_id} committed but its audit record was not written: {e}",
            exc_info=True,
        )
        raise Internal(
            "Vote recorded but the approval history is incomplete: the entry for this vote could not be saved.",
            details={
                "request_id": request_id,
                "admin_id": admin_id,
                "action": approval_action.value,
                "timestamp": now.isoformat(),
                "historyIncomplete": True,
            },
        ) from e

    updated = await get_request(request_id)
    logger.info(
        f"Admin '{admin_id}' {approval_action.value} request {request_id}: "
        f"{updated.approval_count}/{updated.total_approvals}, status={updated.status.value}."
    )
    return updated


async def list_requests(requester_uid: Optional[str] = None) -> List[BeneficiaryRequest]:
    """Semua request (scope admin) atau milik satu pemohon, terbaru dulu."""
    query = {} if requester_uid is None else {"user_id": requester_uid}
    return await BeneficiaryRequest.find(query, sort=[("created_at", DESCENDING), ("_id", DESCENDING)]).to_list()


async def list_approval_history(request_id: str) -> List[BeneficiaryApproval]:
    _parse_request_id(request_id)
    return await BeneficiaryApproval.find(
        BeneficiaryApproval.request_id == request_id,
        sort=[("timestamp", DESCENDING), ("_id", DESCENDING)],
    ).to_list()
