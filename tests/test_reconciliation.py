import pytest

from sfa_portal.core.auth_provider import auth_provider
from sfa_portal.core.reconciliation import find_account_drift
from sfa_portal.models.member import Member, MemberByUid


@pytest.mark.asyncio
async def test_consistent_accounts_report_no_drift(member_factory):
    await member_factory()
    await member_factory()

    drift = await find_account_drift()
    assert drift.is_clean


@pytest.mark.asyncio
async def test_drift_detects_profile_without_credential(member_factory):
    kept = await member_factory()
    orphan = await member_factory()
    await auth_provider.delete_user(orphan.uid)

    drift = await find_account_drift()

    assert not drift.is_clean
    assert drift.profiles_without_credential == [orphan.id]
    assert kept.id not in drift.profiles_without_credential


@pytest.mark.asyncio
async def test_drift_detects_missing_documents_and_email_mismatch(member_factory):
    no_profile = await member_factory()
    no_mirror = await member_factory()
    stale_email = await member_factory(email="before@example.com")

    await Member.get_motor_collection().delete_one({"_id": no_profile.id})
    await MemberByUid.get_motor_collection().delete_one({"_id": no_mirror.uid})
    await auth_provider.update_email(stale_email.uid, "after@example.com")

    drift = await find_account_drift()

    assert drift.credentials_without_profile == [no_profile.uid]
    assert drift.mirrors_without_profile == [no_profile.uid]
    assert drift.profiles_without_mirror == [no_mirror.id]
    assert len(drift.email_mismatches) == 1
    mismatch = drift.email_mismatches[0]
    assert mismatch.sfa_id == stale_email.id
    assert mismatch.credential_email == "after@example.com"
    assert mismatch.profile_email == "before@example.com"
