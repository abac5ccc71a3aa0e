# sfa_portal/api/v1/endpoints/beneficiary.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from loguru import logger

from sfa_portal.core import beneficiary as workflow
from sfa_portal.core.blob_store import BlobStore, get_blob_store
from sfa_portal.core.errors import PermissionDenied
from sfa_portal.core.rate_limiter import limiter
from sfa_portal.core.security import get_current_active_member, require_reviewer
from sfa_portal.models.beneficiary import BeneficiaryApproval, BeneficiaryRequest
from sfa_portal.models.enum import BeneficiaryDocumentType, Capability
from sfa_portal.models.member import Member

router = APIRouter(tags=["Beneficiary Requests"])


async def _read_upload(upload: Optional[UploadFile]) -> Optional[workflow.UploadedDocument]:
    if upload is None:
        return None
    content = await upload.read()
    return workflow.UploadedDocument(filename=upload.filename or "document", content=content, content_type=upload.content_type)


def _ensure_can_view(request_doc: BeneficiaryRequest, member: Member) -> None:
    """Pemohon atau reviewer saja."""
    if request_doc.user_id != member.uid and not member.can(Capability.REVIEW_BENEFICIARY):
        raise PermissionDenied("You can only view your own beneficiary requests.")


@router.post("/requests", response_model=BeneficiaryRequest.Response, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/hour")
async def submit_request(
    request: Request,
    description: str = Form(""),
    verification_doc: Optional[UploadFile] = File(None),
    pay_slip: Optional[UploadFile] = File(None),
    application_form: Optional[UploadFile] = File(None),
    current_member: Member = Depends(get_current_active_member),
    blob_store: BlobStore = Depends(get_blob_store),
):
    uploads = {
        BeneficiaryDocumentType.VERIFICATION: await _read_upload(verification_doc),
        BeneficiaryDocumentType.PAYSLIP: await _read_upload(pay_slip),
        BeneficiaryDocumentType.APPLICATION: await _read_upload(application_form),
    }
    documents = {doc_type: doc for doc_type, doc in uploads.items() if doc is not None}
    created = await workflow.create_request(current_member, description, documents, blob_store)
    logger.info(f"Member '{current_member.id}' submitted beneficiary request {created.id}.")
    return created.to_response()


@router.get("/requests", response_model=List[BeneficiaryRequest.Response])
async def read_requests(
    scope: str = Query("mine", pattern="^(mine|all)$"),
    current_member: Member = Depends(get_current_active_member),
):
    if scope == "all":
        if not current_member.can(Capability.REVIEW_BENEFICIARY):
            raise PermissionDenied("Only reviewers can list all beneficiary requests.")
        requests = await workflow.list_requests()
    else:
        requests = await workflow.list_requests(requester_uid=current_member.uid)
    return [r.to_response() for r in requests]


@router.get("/requests/{request_id}", response_model=BeneficiaryRequest.Response)
async def read_request(request_id: str, current_member: Member = Depends(get_current_active_member)):
    request_doc = await workflow.get_request(request_id)
    _ensure_can_view(request_doc, current_member)
    return request_doc.to_response()


@router.post("/requests/{request_id}/votes", response_model=BeneficiaryRequest.Response)
@limiter.limit("30/minute")
async def vote_on_request(
    request: Request,
    request_id: str,
    vote: BeneficiaryRequest.Vote,
    current_member: Member = Depends(require_reviewer),
):
    updated = await workflow.cast_vote(
        request_id,
        admin_id=current_member.uid,
        admin_name=current_member.full_name,
        action=vote.action,
        remarks=vote.remarks,
    )
    return updated.to_response()


@router.get("/requests/{request_id}/approvals", response_model=List[BeneficiaryApproval.Response])
async def read_approval_history(request_id: str, current_member: Member = Depends(get_current_active_member)):
    request_doc = await workflow.get_request(request_id)
    _ensure_can_view(request_doc, current_member)
    history = await workflow.list_approval_history(request_id)
    return [entry.to_response() for entry in history]
