"""HTTP-level tests through the FastAPI app (middleware, dependencies, error rendering)."""
import pytest

from sfa_portal.models.credential import AuthCredential
from sfa_portal.models.enum import MemberRole
from sfa_portal.models.member import Member, MemberByUid
from sfa_portal.models.portal import RegistrationSetting

DOCUMENT_FILES = {
    "verification_doc": ("verify.pdf", b"%PDF-verify", "application/pdf"),
    "pay_slip": ("slip.pdf", b"%PDF-slip", "application/pdf"),
    "application_form": ("form.pdf", b"%PDF-form", "application/pdf"),
}


# --- Public and health ---

@pytest.mark.asyncio
async def test_root_is_public(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_protected_path_without_token_is_401(client):
    response = await client.get("/api/v1/auth/users/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


@pytest.mark.asyncio
async def test_uploaded_files_require_authentication(client):
    response = await client.get("/files/beneficiary_documents/anything.pdf")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_is_401(client):
    response = await client.get("/api/v1/announcements", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


# --- Auth ---

@pytest.mark.asyncio
async def test_register_login_and_me(client, counter):
    await RegistrationSetting(is_open=True).insert()
    payload = {
        "email": "rider@example.com",
        "password": "Ride#Safe9",
        "full_name": "Rider One",
        "cms_id": "cms777",
        "lobby_id": "East",
        "phone_number": "9123456780",
    }

    registered = await client.post("/api/v1/auth/register", json=payload)
    assert registered.status_code == 201, registered.text
    assert registered.json()["sfa_id"] == "SFA0001"
    assert "password" not in registered.json()

    token = await client.post(
        "/api/v1/auth/token",
        data={"username": "rider@example.com", "password": "Ride#Safe9"},
    )
    assert token.status_code == 200
    access_token = token.json()["access_token"]

    me = await client.get("/api/v1/auth/users/me", headers={"Authorization": f"Bearer {access_token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "rider@example.com"
    assert me.json()["role"] == "member"


@pytest.mark.asyncio
async def test_register_when_closed_renders_domain_error(client, counter):
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": "late@example.com",
            "password": "Late#Comer1",
            "full_name": "Late",
            "cms_id": "c1",
            "lobby_id": "L",
            "phone_number": "9000000000",
        },
    )
    assert response.status_code == 409
    body = response.json()
    assert body["kind"] == "failed-precondition"
    assert body["retryable"] is False


@pytest.mark.asyncio
async def test_login_with_wrong_password_or_disabled_account(client, member_factory):
    member = await member_factory(email="someone@example.com")

    wrong = await client.post("/api/v1/auth/token", data={"username": "someone@example.com", "password": "nope"})
    assert wrong.status_code == 401

    await AuthCredential.get_motor_collection().update_one({"_id": member.uid}, {"$set": {"disabled": True}})
    disabled = await client.post("/api/v1/auth/token", data={"username": "someone@example.com", "password": "Secret#123"})
    assert disabled.status_code == 400


# --- SFA counter ---

@pytest.mark.asyncio
async def test_counter_status_and_double_initialize(client, member_factory, headers_for):
    founder = await member_factory(MemberRole.FOUNDER)

    status_response = await client.get("/api/v1/sfa-ids/counter", headers=headers_for(founder))
    assert status_response.json() == {"initialized": True, "current": 1, "next_sfa_id": "SFA0002"}

    again = await client.post("/api/v1/sfa-ids/counter", json={"starting_number": 50}, headers=headers_for(founder))
    assert again.status_code == 409
    assert again.json()["kind"] == "already-initialized"
    assert again.json()["details"]["current"] == 1


@pytest.mark.asyncio
async def test_counter_requires_capability(client, member_factory, headers_for):
    member = await member_factory()
    response = await client.get("/api/v1/sfa-ids/counter", headers=headers_for(member))
    assert response.status_code == 403


# --- Beneficiary workflow ---

@pytest.mark.asyncio
async def test_beneficiary_request_vote_flow(client, member_factory, headers_for):
    admin = await member_factory(MemberRole.ADMIN)
    founder = await member_factory(MemberRole.FOUNDER)
    requester = await member_factory()

    created = await client.post(
        "/api/v1/beneficiary/requests",
        data={"description": "School fees support"},
        files=DOCUMENT_FILES,
        headers=headers_for(requester),
    )
    assert created.status_code == 201, created.text
    request_id = created.json()["id"]
    assert created.json()["total_approvals"] == 2
    assert created.json()["is_complete"] is True

    forbidden = await client.post(
        f"/api/v1/beneficiary/requests/{request_id}/votes",
        json={"action": "approve"},
        headers=headers_for(requester),
    )
    assert forbidden.status_code == 403

    first = await client.post(
        f"/api/v1/beneficiary/requests/{request_id}/votes",
        json={"action": "approve", "remarks": "Verified"},
        headers=headers_for(admin),
    )
    assert first.json()["status"] == "pending"

    duplicate = await client.post(
        f"/api/v1/beneficiary/requests/{request_id}/votes",
        json={"action": "approve"},
        headers=headers_for(admin),
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["kind"] == "already-voted"

    final = await client.post(
        f"/api/v1/beneficiary/requests/{request_id}/votes",
        json={"action": "approve"},
        headers=headers_for(founder),
    )
    assert final.json()["status"] == "approved"
    assert final.json()["approval_count"] == 2

    history = await client.get(f"/api/v1/beneficiary/requests/{request_id}/approvals", headers=headers_for(requester))
    assert history.status_code == 200
    assert [entry["admin_id"] for entry in history.json()] == [founder.uid, admin.uid]


@pytest.mark.asyncio
async def test_beneficiary_request_missing_document(client, member_factory, headers_for):
    await member_factory(MemberRole.ADMIN)
    requester = await member_factory()
    files = dict(DOCUMENT_FILES)
    files.pop("pay_slip")

    response = await client.post(
        "/api/v1/beneficiary/requests",
        data={"description": "Help"},
        files=files,
        headers=headers_for(requester),
    )
    assert response.status_code == 400
    assert response.json()["details"]["missing"] == ["payslip"]


@pytest.mark.asyncio
async def test_beneficiary_listing_scopes(client, member_factory, headers_for):
    admin = await member_factory(MemberRole.ADMIN)
    alice = await member_factory()
    bob = await member_factory()
    for requester in (alice, bob):
        response = await client.post(
            "/api/v1/beneficiary/requests",
            data={"description": "Support"},
            files=DOCUMENT_FILES,
            headers=headers_for(requester),
        )
        assert response.status_code == 201

    mine = await client.get("/api/v1/beneficiary/requests", headers=headers_for(alice))
    assert [r["user_id"] for r in mine.json()] == [alice.uid]

    everything = await client.get("/api/v1/beneficiary/requests?scope=all", headers=headers_for(admin))
    assert len(everything.json()) == 2

    denied = await client.get("/api/v1/beneficiary/requests?scope=all", headers=headers_for(alice))
    assert denied.status_code == 403

    other_request_id = [r["id"] for r in everything.json() if r["user_id"] == bob.uid][0]
    peek = await client.get(f"/api/v1/beneficiary/requests/{other_request_id}", headers=headers_for(alice))
    assert peek.status_code == 403


# --- Callable functions ---

@pytest.mark.asyncio
async def test_functions_without_token_are_unauthenticated(client, member_factory):
    target = await member_factory()
    response = await client.post(
        "/api/v1/functions/deleteUserAccount",
        json={"uid": target.uid, "sfaId": target.id},
    )
    assert response.status_code == 401
    assert response.json()["kind"] == "unauthenticated"
    assert await Member.get(target.id) is not None


@pytest.mark.asyncio
async def test_functions_reject_admin_caller(client, member_factory, headers_for):
    admin = await member_factory(MemberRole.ADMIN)
    target = await member_factory()
    response = await client.post(
        "/api/v1/functions/updateUserEmail",
        json={"uid": target.uid, "newEmail": "changed@example.com"},
        headers=headers_for(admin),
    )
    assert response.status_code == 403
    assert response.json()["kind"] == "permission-denied"


@pytest.mark.asyncio
async def test_founder_deletes_account_via_function(client, member_factory, headers_for):
    founder = await member_factory(MemberRole.FOUNDER)
    target = await member_factory()
    response = await client.post(
        "/api/v1/functions/deleteUserAccount",
        json={"uid": target.uid, "sfaId": target.id, "reason": "Duplicate account"},
        headers=headers_for(founder),
    )
    assert response.status_code == 200
    assert response.json()["deletedSfaId"] == target.id
    assert await MemberByUid.get(target.uid) is None


@pytest.mark.asyncio
async def test_malformed_function_payload_is_invalid_argument(client, member_factory, headers_for):
    founder = await member_factory(MemberRole.FOUNDER)
    response = await client.post(
        "/api/v1/functions/updateUserEmail",
        json={"uid": 123, "newEmail": "x@example.com"},
        headers=headers_for(founder),
    )
    assert response.status_code == 400
    body = response.json()
    assert body["kind"] == "invalid-argument"
    assert body["retryable"] is False
    assert body["details"]["errors"][0]["loc"] == ["body", "uid"]


# --- Members admin ---

@pytest.mark.asyncio
async def test_role_change_and_disable(client, member_factory, headers_for):
    founder = await member_factory(MemberRole.FOUNDER)
    target = await member_factory()

    promoted = await client.patch(
        f"/api/v1/members/{target.id}/role",
        json={"role": "admin"},
        headers=headers_for(founder),
    )
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "admin"
    assert (await MemberByUid.get(target.uid)).role == MemberRole.ADMIN

    disabled = await client.patch(f"/api/v1/members/{target.id}/disable", headers=headers_for(founder))
    assert disabled.json()["disabled"] is True
    assert (await AuthCredential.get(target.uid)).disabled is True

    blocked = await client.get("/api/v1/auth/users/me", headers=headers_for(target))
    assert blocked.status_code == 403

    enabled = await client.patch(f"/api/v1/members/{target.id}/enable", headers=headers_for(founder))
    assert enabled.json()["disabled"] is False


@pytest.mark.asyncio
async def test_role_change_reports_failed_mirror_step(client, member_factory, headers_for, monkeypatch):
    founder = await member_factory(MemberRole.FOUNDER)
    target = await member_factory()
    mirrors = MemberByUid.get_motor_collection()

    async def failing_update_one(*args, **kwargs):
        raise RuntimeError("mirror store down")

    monkeypatch.setattr(mirrors, "update_one", failing_update_one)

    response = await client.patch(
        f"/api/v1/members/{target.id}/role",
        json={"role": "admin"},
        headers=headers_for(founder),
    )
    monkeypatch.undo()

    assert response.status_code == 500
    body = response.json()
    assert body["kind"] == "internal"
    assert body["details"]["completedSteps"] == ["member_profile"]
    assert body["details"]["failedStep"] == "member_mirror"
    assert (await Member.get(target.id)).role == MemberRole.ADMIN
    assert (await MemberByUid.get(target.uid)).role == MemberRole.MEMBER


@pytest.mark.asyncio
async def test_founder_cannot_disable_self_and_admin_cannot_change_roles(client, member_factory, headers_for):
    founder = await member_factory(MemberRole.FOUNDER)
    admin = await member_factory(MemberRole.ADMIN)

    self_disable = await client.patch(f"/api/v1/members/{founder.id}/disable", headers=headers_for(founder))
    assert self_disable.status_code == 400

    by_admin = await client.patch(
        f"/api/v1/members/{founder.id}/role",
        json={"role": "member"},
        headers=headers_for(admin),
    )
    assert by_admin.status_code == 403

    listing = await client.get("/api/v1/members", headers=headers_for(admin))
    assert [m["sfa_id"] for m in listing.json()] == [founder.id, admin.id]


# --- Settings and announcements ---

@pytest.mark.asyncio
async def test_registration_toggle(client, member_factory, headers_for):
    admin = await member_factory(MemberRole.ADMIN)
    member = await member_factory()

    initial = await client.get("/api/v1/settings/registration", headers=headers_for(member))
    assert initial.json()["is_open"] is False

    denied = await client.put("/api/v1/settings/registration", json={"is_open": True}, headers=headers_for(member))
    assert denied.status_code == 403

    opened = await client.put("/api/v1/settings/registration", json={"is_open": True}, headers=headers_for(admin))
    assert opened.json()["updated_by"] == admin.id
    assert (await RegistrationSetting.get("registration")).is_open is True


@pytest.mark.asyncio
async def test_announcements_lifecycle(client, member_factory, headers_for):
    admin = await member_factory(MemberRole.ADMIN, full_name="Admin Person")
    member = await member_factory()

    blank = await client.post(
        "/api/v1/announcements",
        json={"title": "   ", "message": "Body"},
        headers=headers_for(admin),
    )
    assert blank.status_code == 400

    created = await client.post(
        "/api/v1/announcements",
        json={"title": " AGM ", "message": "Annual meeting on Sunday"},
        headers=headers_for(admin),
    )
    assert created.status_code == 201
    assert created.json()["title"] == "AGM"
    assert created.json()["created_by_name"] == "Admin Person"

    listed = await client.get("/api/v1/announcements", headers=headers_for(member))
    assert [a["title"] for a in listed.json()] == ["AGM"]

    by_member = await client.delete(f"/api/v1/announcements/{created.json()['id']}", headers=headers_for(member))
    assert by_member.status_code == 403

    deleted = await client.delete(f"/api/v1/announcements/{created.json()['id']}", headers=headers_for(admin))
    assert deleted.status_code == 204
    assert (await client.get("/api/v1/announcements", headers=headers_for(member))).json() == []
