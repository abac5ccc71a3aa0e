# sfa_portal/api/v1/endpoints/functions.py
"""Callable endpoints. The caller is taken from the bearer token, never from the payload."""
from typing import Optional

from fastapi import APIRouter, Depends, Request

from sfa_portal.core.accounts import DeleteAccountPayload, UpdateEmailPayload, delete_user_account, update_user_email
from sfa_portal.core.auth_provider import AuthProvider, get_auth_provider
from sfa_portal.core.rate_limiter import limiter
from sfa_portal.core.security import get_caller_uid

router = APIRouter(tags=["Functions"])


@router.post("/deleteUserAccount")
@limiter.limit("10/minute")
async def delete_user_account_callable(
    request: Request,
    payload: DeleteAccountPayload,
    caller_uid: Optional[str] = Depends(get_caller_uid),
    provider: AuthProvider = Depends(get_auth_provider),
):
    return await delete_user_account(caller_uid, payload, provider)


@router.post("/updateUserEmail")
@limiter.limit("10/minute")
async def update_user_email_callable(
    request: Request,
    payload: UpdateEmailPayload,
    caller_uid: Optional[str] = Depends(get_caller_uid),
    provider: AuthProvider = Depends(get_auth_provider),
):
    return await update_user_email(caller_uid, payload, provider)
