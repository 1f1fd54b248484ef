"""
Tests for the invitation lifecycle.

Covers:
- Who may invite whom (admins never invite admins)
- Provisioning on create, and full rollback when a step fails
- At most one pending invite per (organization, email), including a late
  unique-constraint hit
- Acceptance, lazy expiry, revocation and terminal states
- Degraded success when the email cannot be delivered
- End-to-end: owner → org → team → invite admin → accept → admin invites member
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from sqlmodel import select

from app.core.errors import ConflictError, DependencyError
from app.models.base import utcnow
from app.models.invite import Invite
from app.models.team import TeamMember
from app.models.user import Credential
from app.models.user_org import OrganizationMember
from app.services import invites as invite_service
from app.services.organizations import create_organization
from teamhub_shared.schemas.auth import SessionDescriptor
from teamhub_shared.schemas.common import InviteRole, InviteStatus, Role
from teamhub_shared.schemas.invites import INVITE_TRANSITIONS, InviteCreateRequest, can_transition


def _invite_body(org_id, email="new@example.com", role="member", team_id=None, name="New Person"):
    body = {"email": email, "name": name, "role": role, "organization_id": str(org_id)}
    if team_id is not None:
        body["team_id"] = str(team_id)
    return body


async def _accept(client, sent):
    return await client.get(
        "/api/v1/invites/accept",
        params={"token": sent.token, "email": sent.email, "password": sent.password},
    )


# ---------------------------------------------------------------------------
# Lifecycle table
# ---------------------------------------------------------------------------

class TestInviteTransitions:
    def test_pending_moves_to_terminal_states(self):
        for target in (InviteStatus.ACCEPTED, InviteStatus.REVOKED, InviteStatus.EXPIRED):
            assert can_transition(InviteStatus.PENDING, target)

    @pytest.mark.parametrize("status", [InviteStatus.ACCEPTED, InviteStatus.REVOKED, InviteStatus.EXPIRED])
    def test_terminal_states(self, status):
        assert INVITE_TRANSITIONS[status] == []
        assert not can_transition(status, InviteStatus.PENDING)


# ---------------------------------------------------------------------------
# HTTP: create / list / revoke
# ---------------------------------------------------------------------------

class TestCreateInvite:
    async def test_owner_invites_member(self, owner, sender):
        resp = await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Invitation sent successfully"
        assert body["data"]["status"] == "pending"
        assert "token" not in body["data"]

        assert len(sender.sent) == 1
        sent = sender.sent[0]
        assert sent.email == "new@example.com"
        assert sent.role == "member"
        assert len(sent.password) >= 16

        members = (await owner.client.get("/api/v1/organization/members")).json()["data"]
        assert {m["role"] for m in members} == {"owner", "member"}

    async def test_admin_invites_member(self, admin, sender):
        resp = await admin.client.post("/api/v1/invites", json=_invite_body(admin.organization_id))
        assert resp.status_code == 201

    async def test_admin_cannot_invite_admin(self, admin, sender, session_factory):
        resp = await admin.client.post(
            "/api/v1/invites", json=_invite_body(admin.organization_id, role="admin")
        )
        assert resp.status_code == 403
        assert resp.json()["message"] == "Admins cannot invite other admins, can only invite members"
        assert sender.sent == []
        async with session_factory() as session:
            result = await session.execute(select(Credential).where(Credential.email == "new@example.com"))
            assert result.first() is None

    async def test_member_cannot_invite(self, member):
        resp = await member.client.post("/api/v1/invites", json=_invite_body(member.organization_id))
        assert resp.status_code == 403
        assert resp.json()["message"] == "Only owners and admins can send invites"

    async def test_invite_role_owner_is_invalid(self, owner):
        resp = await owner.client.post(
            "/api/v1/invites", json=_invite_body(owner.organization_id, role="owner")
        )
        assert resp.status_code == 400

    async def test_existing_user_is_conflict(self, owner, member):
        resp = await owner.client.post(
            "/api/v1/invites", json=_invite_body(owner.organization_id, email=member.email)
        )
        assert resp.status_code == 409
        assert resp.json()["message"] == "User with this email already exists"

    async def test_second_invite_for_same_email_is_conflict(self, owner, sender):
        first = await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        assert first.status_code == 201
        second = await owner.client.post(
            "/api/v1/invites", json=_invite_body(owner.organization_id, email="NEW@example.com")
        )
        assert second.status_code == 409
        assert len(sender.sent) == 1

    async def test_team_must_belong_to_org(self, owner, new_actor):
        other = await new_actor("other@example.com", organization_name="Globex")
        team_id = (await other.client.post("/api/v1/teams", json={"name": "Secret"})).json()["data"]["id"]
        resp = await owner.client.post(
            "/api/v1/invites", json=_invite_body(owner.organization_id, team_id=team_id)
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "Team not found in organization"

    async def test_invite_with_team(self, owner, sender):
        team_id = (await owner.client.post("/api/v1/teams", json={"name": "Design"})).json()["data"]["id"]
        resp = await owner.client.post(
            "/api/v1/invites", json=_invite_body(owner.organization_id, team_id=team_id)
        )
        assert resp.status_code == 201
        team_members = (await owner.client.get(f"/api/v1/teams/{team_id}/members")).json()["data"]
        assert len(team_members) == 1
        assert team_members[0]["role"] == "member"
        assert team_members[0]["added_by"] == str(owner.profile_id)
        assert team_members[0]["profile"]["full_name"] == "New Person"

    async def test_email_failure_degrades(self, owner, sender):
        sender.fail = True
        resp = await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        assert resp.status_code == 201
        assert resp.json()["success"] is True
        assert resp.json()["message"] == "Invitation created but email failed to send"

        invites = (await owner.client.get("/api/v1/invites")).json()["data"]
        assert [i["email"] for i in invites] == ["new@example.com"]

    async def test_invite_is_logged(self, owner, sender):
        await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        logs = (await owner.client.get("/api/v1/activity-logs")).json()["data"]
        assert logs[0]["action_type"] == "user.invited"
        assert logs[0]["metadata"]["email"] == "new@example.com"


class TestListAndRevoke:
    async def test_member_cannot_view(self, member):
        resp = await member.client.get("/api/v1/invites")
        assert resp.status_code == 403
        assert resp.json()["message"] == "Only owners and admins can view invites"

    async def test_revoke_pending(self, owner, sender):
        invite_id = (
            await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        ).json()["data"]["id"]

        resp = await owner.client.delete(f"/api/v1/invites/{invite_id}")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Invitation revoked successfully"
        assert resp.json()["data"]["status"] == "revoked"
        assert (await owner.client.get("/api/v1/invites")).json()["data"] == []

        again = await owner.client.delete(f"/api/v1/invites/{invite_id}")
        assert again.status_code == 400
        assert again.json()["message"] == "Cannot revoke revoked invitation"

    async def test_revoked_invite_cannot_be_accepted(self, owner, sender, make_client):
        invite_id = (
            await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        ).json()["data"]["id"]
        await owner.client.delete(f"/api/v1/invites/{invite_id}")

        resp = await _accept(await make_client(), sender.sent[0])
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invitation is revoked"

    async def test_member_cannot_revoke(self, owner, member, sender):
        invite_id = (
            await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        ).json()["data"]["id"]
        resp = await member.client.delete(f"/api/v1/invites/{invite_id}")
        assert resp.status_code == 403

    async def test_revoke_unknown(self, owner):
        resp = await owner.client.delete(f"/api/v1/invites/{uuid.uuid4()}")
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# HTTP: acceptance and expiry
# ---------------------------------------------------------------------------

class TestAcceptInvite:
    async def test_accept_redirects_with_session(self, owner, sender, make_client):
        await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id, role="admin"))
        invitee = await make_client()

        resp = await _accept(invitee, sender.sent[0])
        assert resp.status_code == 303
        assert resp.headers["location"] == "http://localhost:3000"

        me = (await invitee.get("/auth/me")).json()["data"]
        assert me["role"] == "admin"
        assert me["organization_id"] == str(owner.organization_id)
        assert me["full_name"] == "New Person"

        logs = (await owner.client.get("/api/v1/activity-logs")).json()["data"]
        assert logs[0]["action_type"] == "invite.accepted"

    async def test_accept_twice(self, owner, sender, make_client):
        await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        assert (await _accept(await make_client(), sender.sent[0])).status_code == 303
        resp = await _accept(await make_client(), sender.sent[0])
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invitation is accepted"

    async def test_wrong_token(self, owner, sender, client):
        await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        sent = sender.sent[0]
        resp = await client.get(
            "/api/v1/invites/accept",
            params={"token": "nope", "email": sent.email, "password": sent.password},
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "Invalid or expired invitation"

    async def test_wrong_password(self, owner, sender, client):
        await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        sent = sender.sent[0]
        resp = await client.get(
            "/api/v1/invites/accept",
            params={"token": sent.token, "email": sent.email, "password": "guess"},
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Failed to authenticate. Invalid credentials"

    async def test_lazy_expiry(self, owner, sender, client, session_factory):
        await owner.client.post("/api/v1/invites", json=_invite_body(owner.organization_id))
        sent = sender.sent[0]

        async with session_factory() as session:
            invite = (await session.execute(select(Invite))).scalar_one()
            invite.expires_at = utcnow() - timedelta(minutes=1)
            await session.commit()

        resp = await _accept(client, sent)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Invitation has expired"

        async with session_factory() as session:
            invite = (await session.execute(select(Invite))).scalar_one()
            assert invite.status == "expired"

        again = await _accept(client, sent)
        assert again.json()["message"] == "Invitation is expired"


# ---------------------------------------------------------------------------
# Service level: provisioning rollback and the pending-invite constraint
# ---------------------------------------------------------------------------

@pytest.fixture
async def org_owner(store, issuer):
    profile = await issuer.sign_up("boss@example.com", "pw-123456", "Boss")
    session = SessionDescriptor(
        profile_id=profile.id,
        access_token="a",
        refresh_token="r",
        full_name="Boss",
        role=Role.OWNER,
    )
    org = await create_organization(store, session, "Initech")
    return session.model_copy(update={"organization_id": org.id})


async def _count(db, model, *where) -> int:
    result = await db.execute(select(model).where(*where).execution_options(populate_existing=True))
    return len(result.scalars().all())


class TestProvisioningRollback:
    async def test_team_membership_failure_unwinds_everything(
        self, store, issuer, sender, db, org_owner, monkeypatch
    ):
        team = await store.insert_team(org_owner.organization_id, "Ops", "ops", None, org_owner.profile_id)

        async def fail(*args, **kwargs):
            raise DependencyError("team_members write failed")

        monkeypatch.setattr(store, "insert_team_member", fail)
        req = InviteCreateRequest(
            email="victim@example.com",
            name="Victim",
            role=InviteRole.MEMBER,
            organization_id=org_owner.organization_id,
            team_id=team.id,
        )

        with pytest.raises(DependencyError):
            await invite_service.create_invite(
                store, issuer, sender, org_owner, org_owner.organization_id, req
            )

        assert not await issuer.email_registered("victim@example.com")
        assert await _count(db, OrganizationMember) == 1  # just the owner
        assert await _count(db, TeamMember) == 0
        assert await _count(db, Invite) == 0
        assert sender.sent == []

    async def test_late_pending_invite_conflict_unwinds(
        self, store, issuer, sender, db, org_owner, monkeypatch
    ):
        # A pending invite for this email exists without an identity behind it,
        # and the pre-check misses it.
        await store.insert_invite(
            Invite(
                organization_id=org_owner.organization_id,
                inviter_id=org_owner.profile_id,
                email="racer@example.com",
                role="member",
                token="existing-token",
                expires_at=utcnow() + timedelta(hours=1),
            )
        )

        async def nothing_pending(*args, **kwargs):
            return False

        monkeypatch.setattr(store, "pending_invite_exists", nothing_pending)
        req = InviteCreateRequest(
            email="racer@example.com",
            name="Racer",
            role=InviteRole.MEMBER,
            organization_id=org_owner.organization_id,
        )

        with pytest.raises(ConflictError):
            await invite_service.create_invite(
                store, issuer, sender, org_owner, org_owner.organization_id, req
            )

        assert not await issuer.email_registered("racer@example.com")
        assert await _count(db, OrganizationMember) == 1
        assert await _count(db, Invite, Invite.email == "racer@example.com") == 1

    async def test_pending_index_allows_reinvite_after_revoke(self, store, org_owner):
        def make(token):
            return Invite(
                organization_id=org_owner.organization_id,
                inviter_id=org_owner.profile_id,
                email="again@example.com",
                role="member",
                token=token,
                expires_at=utcnow() + timedelta(hours=1),
            )

        first = await store.insert_invite(make("t1"))
        with pytest.raises(ConflictError):
            await store.insert_invite(make("t2"))
        await store.set_invite_status(first, "revoked")
        await store.insert_invite(make("t3"))

    async def test_expire_stale_invites(self, store, org_owner):
        await store.insert_invite(
            Invite(
                organization_id=org_owner.organization_id,
                inviter_id=org_owner.profile_id,
                email="late@example.com",
                role="member",
                token="late",
                expires_at=utcnow() - timedelta(hours=1),
            )
        )
        assert await invite_service.expire_stale_invites(store) == 1
        assert await invite_service.expire_stale_invites(store) == 0


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

class TestEndToEnd:
    async def test_owner_to_member_flow(self, new_actor, make_client, sender):
        owner = await new_actor("owner@initech.example.com", organization_name="Initech")

        team = await owner.client.post("/api/v1/teams", json={"name": "Platform"})
        team_id = team.json()["data"]["id"]

        resp = await owner.client.post(
            "/api/v1/invites",
            json=_invite_body(owner.organization_id, email="lead@initech.example.com", role="admin", team_id=team_id),
        )
        assert resp.status_code == 201

        admin_client = await make_client()
        assert (await _accept(admin_client, sender.sent[-1])).status_code == 303
        me = (await admin_client.get("/auth/me")).json()["data"]
        assert me["role"] == "admin"

        # the new admin may invite members but not admins
        denied = await admin_client.post(
            "/api/v1/invites",
            json=_invite_body(owner.organization_id, email="peer@initech.example.com", role="admin"),
        )
        assert denied.status_code == 403

        resp = await admin_client.post(
            "/api/v1/invites",
            json=_invite_body(owner.organization_id, email="dev@initech.example.com"),
        )
        assert resp.status_code == 201

        member_client = await make_client()
        assert (await _accept(member_client, sender.sent[-1])).status_code == 303
        assert (await member_client.get("/auth/me")).json()["data"]["role"] == "member"

        members = (await owner.client.get("/api/v1/organization/members")).json()["data"]
        assert sorted(m["role"] for m in members) == ["admin", "member", "owner"]

        team_members = (await owner.client.get(f"/api/v1/teams/{team_id}/members")).json()["data"]
        assert len(team_members) == 1

        assert (await owner.client.get("/api/v1/invites")).json()["data"] == []

        # invitee can log in normally with the emailed credentials afterwards
        relogin = await make_client()
        resp = await relogin.post(
            "/auth/login", json={"email": "dev@initech.example.com", "password": sender.sent[-1].password}
        )
        assert resp.json()["data"]["role"] == "member"
