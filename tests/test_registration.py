import pytest

from sfa_portal.core.beneficiary import count_reviewers
from sfa_portal.core.errors import AlreadyExists, FailedPrecondition, InvalidArgument, NotInitialized
from sfa_portal.core.registration import provision_member, register
from sfa_portal.core.sfa_id import initialize_counter
from sfa_portal.models.credential import AuthCredential
from sfa_portal.models.enum import MemberRole
from sfa_portal.models.member import Member, MemberByUid
from sfa_portal.models.portal import RegistrationSetting


def registration(**overrides) -> Member.Register:
    data = dict(
        email="new.member@example.com",
        password="Strong#Pass1",
        full_name="New Member",
        cms_id="cms123",
        lobby_id="North Lobby",
        phone_number="98765 43210",
    )
    data.update(overrides)
    return Member.Register(**data)


async def open_registration():
    await RegistrationSetting(is_open=True).insert()


@pytest.mark.asyncio
async def test_register_creates_credential_profile_and_mirror(db):
    await initialize_counter(0)
    await open_registration()

    member = await register(registration())

    assert member.id == "SFA0001"
    assert member.role == MemberRole.MEMBER
    assert member.phone_number == "9876543210"
    assert member.cms_id == "CMS123"
    credential = await AuthCredential.get(member.uid)
    assert credential.email == "new.member@example.com"
    mirror = await MemberByUid.get(member.uid)
    assert mirror.sfa_id == "SFA0001"


@pytest.mark.asyncio
async def test_register_closed_by_default(db):
    await initialize_counter(0)
    with pytest.raises(FailedPrecondition):
        await register(registration())
    assert await AuthCredential.find_all().count() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"phone_number": "12345"},
        {"password": "short#A"},
        {"password": "nouppercase#1"},
        {"password": "NoSymbol123"},
        {"full_name": "  "},
        {"lobby_id": ""},
    ],
)
async def test_register_validation(db, overrides):
    await initialize_counter(0)
    await open_registration()
    with pytest.raises(InvalidArgument):
        await register(registration(**overrides))
    assert await AuthCredential.find_all().count() == 0
    assert await Member.find_all().count() == 0


@pytest.mark.asyncio
async def test_register_rejects_taken_email(db):
    await initialize_counter(0)
    await open_registration()
    await register(registration())

    with pytest.raises(AlreadyExists):
        await register(registration(email="NEW.member@example.com", cms_id="other"))
    assert await Member.find_all().count() == 1


@pytest.mark.asyncio
async def test_provision_rolls_back_credential_when_allocation_fails(db):
    # Counter belum diinisialisasi
    with pytest.raises(NotInitialized):
        await provision_member(registration())

    assert await AuthCredential.find_all().count() == 0
    assert await Member.find_all().count() == 0
    assert await MemberByUid.find_all().count() == 0


@pytest.mark.asyncio
async def test_provision_removes_profile_when_mirror_write_fails(db, monkeypatch):
    await initialize_counter(0)

    async def failing_insert(self, *args, **kwargs):
        raise RuntimeError("mirror store down")

    monkeypatch.setattr(MemberByUid, "insert", failing_insert)

    with pytest.raises(RuntimeError):
        await provision_member(registration(email="founder@example.com"), role=MemberRole.FOUNDER)

    assert await AuthCredential.find_all().count() == 0
    assert await Member.find_all().count() == 0
    assert await count_reviewers() == 0


@pytest.mark.asyncio
async def test_provision_founder_ignores_registration_toggle(db):
    await initialize_counter(0)
    founder = await provision_member(registration(email="founder@example.com"), role=MemberRole.FOUNDER)
    assert founder.role == MemberRole.FOUNDER
    assert (await MemberByUid.get(founder.uid)).role == MemberRole.FOUNDER
