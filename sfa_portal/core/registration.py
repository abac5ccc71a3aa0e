# sfa_portal/core/registration.py
import re
import logging

from sfa_portal.core.auth_provider import AuthProvider, CredentialNotFound, EmailAlreadyInUse, auth_provider
from sfa_portal.core.errors import AlreadyExists, FailedPrecondition, InvalidArgument
from sfa_portal.core.sfa_id import allocate_sfa_id
from sfa_portal.models.enum import MemberRole
from sfa_portal.models.member import Member, MemberByUid
from sfa_portal.models.portal import RegistrationSetting, REGISTRATION_SETTING_ID

logger = logging.getLogger(__name__)

SYMBOL_PATTERN = re.compile(r"[^A-Za-z0-9\s]")


def normalize_phone(raw: str) -> str:
    return re.sub(r"\D", "", raw or "")


def validate_registration(data: Member.Register) -> None:
    """Raises InvalidArgument for the first field that fails the registration rules."""
    for field_name in ("full_name", "cms_id", "lobby_id"):
        if not (getattr(data, field_name) or "").strip():
            raise InvalidArgument(f"'{field_name}' is required.", details={"field": field_name})

    if len(normalize_phone(data.phone_number)) != 10:
        raise InvalidArgument("Phone number must be exactly 10 digits.", details={"field": "phone_number"})
    if data.emergency_number and len(normalize_phone(data.emergency_number)) != 10:
        raise InvalidArgument("Emergency number must be exactly 10 digits.", details={"field": "emergency_number"})

    password = data.password or ""
    if len(password) < 8:
        raise InvalidArgument("Password must be at least 8 characters long.", details={"field": "password"})
    if not any(c.isupper() for c in password):
        raise InvalidArgument("Password must contain at least one uppercase letter.", details={"field": "password"})
    if not SYMBOL_PATTERN.search(password):
        raise InvalidArgument("Password must contain at least one symbol.", details={"field": "password"})


async def is_registration_open() -> bool:
    setting = await RegistrationSetting.get(REGISTRATION_SETTING_ID)
    # Tanpa dokumen config, registrasi dianggap tertutup
    return bool(setting and setting.is_open)


async def provision_member(
    data: Member.Register,
    role: MemberRole = MemberRole.MEMBER,
    provider: AuthProvider = auth_provider,
) -> Member:
    """
    Creates the credential, allocates an SFA ID and writes profile + mirror.
    On any failure after the credential exists, the profile (if written) and
    the credential are deleted again and the original error is re-raised.
    """
    try:
        credential = await provider.create_user(data.email, data.password)
    except EmailAlreadyInUse:
        raise AlreadyExists("This email is already registered.", details={"field": "email"})

    profile_written = False
    try:
        sfa_id = await allocate_sfa_id()
        member = Member(
            id=sfa_id,
            uid=credential.id,
            email=credential.email,
            full_name=data.full_name.strip(),
            cms_id=data.cms_id.strip().upper(),
            lobby_id=data.lobby_id.strip(),
            phone_number=normalize_phone(data.phone_number),
            emergency_number=normalize_phone(data.emergency_number) or None,
            role=role,
        )
        await member.insert()
        profile_written = True
        await MemberByUid.from_member(member).insert()
    except Exception:
        logger.warning(f"Provisioning failed for uid '{credential.id}'; removing the new credential.")
        if profile_written:
            # Profil tanpa mirror/kredensial akan ikut terhitung quorum
            await Member.get_motor_collection().delete_one({"_id": member.id})
        try:
            await provider.delete_user(credential.id)
        except CredentialNotFound:
            pass
        raise

    logger.info(f"Member {member.id} provisioned (uid={member.uid}, role={role.value}).")
    return member


async def register(data: Member.Register, provider: AuthProvider = auth_provider) -> Member:
    if not await is_registration_open():
        raise FailedPrecondition("Registration is currently closed.")
    validate_registration(data)
    return await provision_member(data, MemberRole.MEMBER, provider)
