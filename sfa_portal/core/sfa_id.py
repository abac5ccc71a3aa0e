# sfa_portal/core/sfa_id.py
import logging
from datetime import datetime, timezone
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from sfa_portal.core.config import SFA_ID_PREFIX, SFA_ID_WIDTH
from sfa_portal.core.errors import AllocationFailed, AlreadyInitialized, InvalidArgument, NotInitialized
from sfa_portal.models.counter import SequenceCounter

logger = logging.getLogger(__name__)

SFA_COUNTER_ID = "sfa_id_counter"


def format_sfa_id(number: int) -> str:
    """SFA + nomor dengan padding; tidak dipotong jika lebih dari SFA_ID_WIDTH digit."""
    return f"{SFA_ID_PREFIX}{str(number).zfill(SFA_ID_WIDTH)}"


async def initialize_counter(starting_number: int, initialized_by: str = "admin") -> SequenceCounter:
    """
    Creates the singleton SFA counter with current=starting_number.
    Raises AlreadyInitialized if the counter exists.
    """
    if isinstance(starting_number, bool) or not isinstance(starting_number, int) or starting_number < 0:
        raise InvalidArgument("Starting number must be a non-negative integer.")

    existing = await SequenceCounter.get(SFA_COUNTER_ID)
    if existing:
        raise AlreadyInitialized(
            f"Counter already initialized. Current value: {existing.current}",
            details={"current": existing.current},
        )

    now = datetime.now(timezone.utc)
    counter = SequenceCounter(
        id=SFA_COUNTER_ID,
        current=starting_number,
        last_updated=now,
        initialized_at=now,
        initialized_by=initialized_by,
    )
    try:
        await counter.insert()
    except DuplicateKeyError:
        # Kalah balapan dengan inisialisasi lain; _id tetap menjamin hanya satu counter
        current = await current_counter_value()
        raise AlreadyInitialized(
            f"Counter already initialized. Current value: {current}",
            details={"current": current},
        )
    logger.info(f"SFA counter initialized at {starting_number} by '{initialized_by}'.")
    return counter


async def allocate_sfa_id() -> str:
    """
    Reserves the next SFA ID with a single atomic $inc on the counter document.
    Concurrent callers never receive the same number.
    """
    collection = SequenceCounter.get_motor_collection()
    try:
        updated_doc = await collection.find_one_and_update(
            {"_id": SFA_COUNTER_ID},
            {"$inc": {"current": 1}, "$set": {"last_updated": datetime.now(timezone.utc)}},
            upsert=False,  # Counter wajib diinisialisasi eksplisit
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        logger.error(f"Error allocating SFA ID: {e}", exc_info=True)
        raise AllocationFailed() from e

    if updated_doc is None:
        logger.error("SFA ID allocation attempted before the counter was initialized.")
        raise NotInitialized()

    sfa_id = format_sfa_id(updated_doc["current"])
    logger.debug(f"Allocated SFA ID {sfa_id}")
    return sfa_id


async def current_counter_value() -> Optional[int]:
    counter = await SequenceCounter.get(SFA_COUNTER_ID)
    if counter is None:
        return None
    return counter.current
