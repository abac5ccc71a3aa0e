# sfa_portal/api/v1/endpoints/settings.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from loguru import logger

from sfa_portal.core.security import get_current_active_member, require_portal_manager
from sfa_portal.models.member import Member
from sfa_portal.models.portal import RegistrationSetting, REGISTRATION_SETTING_ID

router = APIRouter(tags=["Settings"])


@router.get("/registration", response_model=RegistrationSetting.Response)
async def read_registration_setting(current_member: Member = Depends(get_current_active_member)):
    setting = await RegistrationSetting.get(REGISTRATION_SETTING_ID)
    if setting is None:
        return RegistrationSetting.Response(is_open=False)
    return RegistrationSetting.Response(**setting.model_dump(include={"is_open", "last_updated", "updated_by"}))


@router.put("/registration", response_model=RegistrationSetting.Response)
async def update_registration_setting(
    payload: RegistrationSetting.Update,
    current_member: Member = Depends(require_portal_manager),
):
    now = datetime.now(timezone.utc)
    # Upsert: dokumen config bisa belum ada
    await RegistrationSetting.get_motor_collection().update_one(
        {"_id": REGISTRATION_SETTING_ID},
        {"$set": {"is_open": payload.is_open, "last_updated": now, "updated_by": current_member.id}},
        upsert=True,
    )
    logger.info(f"Registration {'opened' if payload.is_open else 'closed'} by '{current_member.id}'.")
    return RegistrationSetting.Response(is_open=payload.is_open, last_updated=now, updated_by=current_member.id)
