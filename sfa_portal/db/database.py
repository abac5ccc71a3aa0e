# sfa_portal/db/database.py
import logging

import motor.motor_asyncio
from beanie import init_beanie

from sfa_portal.core.config import MONGODB_URL, DATABASE_NAME
from sfa_portal.models.counter import SequenceCounter
from sfa_portal.models.member import Member, MemberByUid
from sfa_portal.models.credential import AuthCredential
from sfa_portal.models.beneficiary import BeneficiaryRequest, BeneficiaryApproval
from sfa_portal.models.audit import AuditLog
from sfa_portal.models.portal import RegistrationSetting, Announcement

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [
    SequenceCounter,
    Member,
    MemberByUid,
    AuthCredential,
    BeneficiaryRequest,
    BeneficiaryApproval,
    AuditLog,
    RegistrationSetting,
    Announcement,
]


async def init_db(database=None):
    """Inisialisasi koneksi database dan Beanie."""
    if database is None:
        logger.info("Connecting to MongoDB...")
        client = motor.motor_asyncio.AsyncIOMotorClient(MONGODB_URL, uuidRepresentation="standard")
        database = client[DATABASE_NAME]
    logger.info(f"Using database: {database.name}")

    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    logger.info("Beanie initialization complete for all models.")
    return database


async def ping_database() -> bool:
    database = Member.get_motor_collection().database
    await database.command("ping")
    return True
