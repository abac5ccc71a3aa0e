# sfa_portal/api/v1/endpoints/members.py
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Path, Query, Request
from loguru import logger

from sfa_portal.core.accounts import StepTracker
from sfa_portal.core.auth_provider import AuthProvider, CredentialNotFound, get_auth_provider
from sfa_portal.core.errors import InvalidArgument, NotFound
from sfa_portal.core.rate_limiter import limiter
from sfa_portal.core.security import require_account_manager, require_portal_manager
from sfa_portal.models.member import Member, MemberByUid

router = APIRouter(tags=["Members - Admin"])


async def get_member_or_404(sfa_id: str) -> Member:
    member = await Member.get(sfa_id.strip().upper())
    if member is None:
        raise NotFound(f"Member '{sfa_id}' not found.")
    return member


async def _sync_profile_and_mirror(member: Member, fields: dict) -> Member:
    now = datetime.now(timezone.utc)
    tracker = StepTracker("syncMember", member.uid)
    step = "member_profile"
    try:
        await Member.get_motor_collection().update_one({"_id": member.id}, {"$set": {**fields, "updated_at": now}})
        tracker.done(step)

        step = "member_mirror"
        mirror_fields = {k: v for k, v in fields.items() if k in ("role", "disabled")}
        result = await MemberByUid.get_motor_collection().update_one(
            {"_id": member.uid},
            {"$set": {**mirror_fields, "updated_at": now}},
        )
    except Exception as e:
        raise tracker.failure(step, e, f"Member {member.id} may be out of sync with its mirror.") from e
    if result.matched_count == 0:
        logger.warning(f"Mirror document missing for uid '{member.uid}' (member {member.id}).")
    else:
        tracker.done(step)
    return await get_member_or_404(member.id)


# --- GET / --- (List all members)
@router.get("", response_model=List[Member.Response])
@limiter.limit("30/minute")
async def read_members(
    request: Request,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_member: Member = Depends(require_portal_manager),
):
    members = await Member.find_all(skip=skip, limit=limit).sort("+_id").to_list()
    return [m.to_response() for m in members]


@router.get("/{sfa_id}", response_model=Member.Response)
async def read_member(sfa_id: str = Path(...), current_member: Member = Depends(require_portal_manager)):
    return (await get_member_or_404(sfa_id)).to_response()


@router.patch("/{sfa_id}/role", response_model=Member.Response)
async def update_member_role(
    payload: Member.RoleUpdate,
    sfa_id: str = Path(...),
    current_member: Member = Depends(require_account_manager),
):
    member = await get_member_or_404(sfa_id)
    if member.id == current_member.id:
        raise InvalidArgument("You cannot change your own role.")
    # Snapshot quorum request yang sedang berjalan tidak ikut berubah
    updated = await _sync_profile_and_mirror(member, {"role": payload.role.value, "updated_by": current_member.id})
    logger.warning(f"Role of {member.id} changed {member.role.value} -> {payload.role.value} by '{current_member.id}'.")
    return updated.to_response()


async def _set_disabled(member: Member, disabled: bool, actor: Member, provider: AuthProvider) -> Member:
    fields = {
        "disabled": disabled,
        "disabled_at": datetime.now(timezone.utc) if disabled else None,
        "disabled_by": actor.id if disabled else None,
        "updated_by": actor.id,
    }
    updated = await _sync_profile_and_mirror(member, fields)
    try:
        await provider.set_disabled(member.uid, disabled)
    except CredentialNotFound:
        logger.warning(f"No credential for uid '{member.uid}' while toggling disabled on {member.id}.")
    logger.warning(f"Member {member.id} {'disabled' if disabled else 'enabled'} by '{actor.id}'.")
    return updated


@router.patch("/{sfa_id}/disable", response_model=Member.Response)
async def disable_member(
    sfa_id: str = Path(...),
    current_member: Member = Depends(require_account_manager),
    provider: AuthProvider = Depends(get_auth_provider),
):
    member = await get_member_or_404(sfa_id)
    if member.id == current_member.id:
        raise InvalidArgument("You cannot disable your own account.")
    return (await _set_disabled(member, True, current_member, provider)).to_response()


@router.patch("/{sfa_id}/enable", response_model=Member.Response)
async def enable_member(
    sfa_id: str = Path(...),
    current_member: Member = Depends(require_account_manager),
    provider: AuthProvider = Depends(get_auth_provider),
):
    member = await get_member_or_404(sfa_id)
    return (await _set_disabled(member, False, current_member, provider)).to_response()
