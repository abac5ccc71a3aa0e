# sfa_portal/api/v1/endpoints/sfa_ids.py
from fastapi import APIRouter, Depends, Request, status
from loguru import logger

from sfa_portal.core.rate_limiter import limiter
from sfa_portal.core.security import require_account_manager, require_portal_manager
from sfa_portal.core.sfa_id import current_counter_value, format_sfa_id, initialize_counter
from sfa_portal.models.counter import SequenceCounter
from sfa_portal.models.member import Member

router = APIRouter(tags=["SFA IDs"])


def _status_for(current) -> SequenceCounter.Status:
    if current is None:
        return SequenceCounter.Status(initialized=False)
    return SequenceCounter.Status(initialized=True, current=current, next_sfa_id=format_sfa_id(current + 1))


@router.post("/counter", response_model=SequenceCounter.Status, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def initialize_sfa_counter(
    request: Request,
    payload: SequenceCounter.Initialize,
    current_member: Member = Depends(require_account_manager),
):
    counter = await initialize_counter(payload.starting_number, initialized_by=current_member.id)
    logger.warning(f"SFA counter initialized at {counter.current} by '{current_member.id}'.")
    return _status_for(counter.current)


@router.get("/counter", response_model=SequenceCounter.Status)
async def read_sfa_counter(current_member: Member = Depends(require_portal_manager)):
    return _status_for(await current_counter_value())
