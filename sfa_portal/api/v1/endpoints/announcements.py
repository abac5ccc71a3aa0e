# sfa_portal/api/v1/endpoints/announcements.py
from typing import List

from beanie import PydanticObjectId
from bson import ObjectId
from fastapi import APIRouter, Depends, Request, status
from loguru import logger

from sfa_portal.core.errors import InvalidArgument, NotFound
from sfa_portal.core.rate_limiter import limiter
from sfa_portal.core.security import get_current_active_member, require_portal_manager
from sfa_portal.models.member import Member
from sfa_portal.models.portal import Announcement

router = APIRouter(tags=["Announcements"])


@router.get("", response_model=List[Announcement.Response])
async def read_announcements(current_member: Member = Depends(get_current_active_member)):
    announcements = await Announcement.find(
        Announcement.is_active == True,  # noqa: E712
    ).sort("-created_at").to_list()
    return [a.to_response() for a in announcements]


@router.post("", response_model=Announcement.Response, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/hour")
async def create_announcement(
    request: Request,
    payload: Announcement.Create,
    current_member: Member = Depends(require_portal_manager),
):
    title = payload.title.strip()
    message = payload.message.strip()
    if not title or not message:
        raise InvalidArgument("Title and message are required.")

    announcement = Announcement(
        title=title,
        message=message,
        created_by=current_member.uid,
        created_by_name=current_member.full_name or "Admin",
    )
    await announcement.insert()
    logger.info(f"Announcement {announcement.id} posted by '{current_member.id}'.")
    return announcement.to_response()


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_announcement(announcement_id: str, current_member: Member = Depends(require_portal_manager)):
    if not ObjectId.is_valid(announcement_id):
        raise InvalidArgument("Invalid announcement ID format.")
    announcement = await Announcement.get(PydanticObjectId(announcement_id))
    if announcement is None:
        raise NotFound(f"Announcement '{announcement_id}' not found.")
    await announcement.delete()
    logger.info(f"Announcement {announcement_id} deleted by '{current_member.id}'.")
