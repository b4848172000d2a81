from __future__ import annotations

import re
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio

from clanhall.clans.domain.applications_service import ApplicationsService
from clanhall.clans.domain.context import utcnow
from clanhall.clans.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clanhall.clans.domain.invitations_service import InvitationsService
from clanhall.clans.domain.membership_service import MembershipService
from clanhall.clans.domain import models
from clanhall.clans.schemas import dto
from clan_fakes import ClanWorld, user


@pytest_asyncio.fixture
async def gated(clans_repo) -> ClanWorld:
	world = await ClanWorld(clans_repo).build(join_type="application")
	await clans_repo.update_clan(
		world.clan.id,
		application_template=[models.ApplicationField(label="age"), models.ApplicationField(label="why", type="textarea")],
	)
	return world


@pytest.mark.asyncio
async def test_application_answers_are_stored_verbatim(gated):
	service = ApplicationsService(repository=gated.repo)
	submitted = await service.apply(
		gated.outsider,
		gated.clan.id,
		dto.ApplicationCreateRequest(answers={"age": "17", "why": "friends"}),
	)
	assert submitted.status == "pending"
	assert submitted.answers == {"age": "17", "why": "friends"}

	pending = await service.list_pending(gated.officer, gated.clan.id)
	assert [application.id for application in pending] == [submitted.id]


@pytest.mark.asyncio
async def test_application_rejects_answers_off_template(gated):
	service = ApplicationsService(repository=gated.repo)
	with pytest.raises(ValidationError) as exc:
		await service.apply(gated.outsider, gated.clan.id, dto.ApplicationCreateRequest(answers={"age": "17"}))
	assert exc.value.context["missing"] == ["why"]


@pytest.mark.asyncio
async def test_application_requires_application_clan(world):
	with pytest.raises(ForbiddenError) as exc:
		await ApplicationsService(repository=world.repo).apply(world.outsider, world.clan.id, dto.ApplicationCreateRequest())
	assert exc.value.detail == "clan_not_accepting_applications"


@pytest.mark.asyncio
async def test_one_pending_application_per_clan(gated):
	service = ApplicationsService(repository=gated.repo)
	answers = dto.ApplicationCreateRequest(answers={"age": "20", "why": "x"})
	await service.apply(gated.outsider, gated.clan.id, answers)
	with pytest.raises(ConflictError) as exc:
		await service.apply(gated.outsider, gated.clan.id, answers)
	assert exc.value.detail == "application_pending"


@pytest.mark.asyncio
async def test_accepting_application_seats_member_once(gated):
	service = ApplicationsService(repository=gated.repo)
	submitted = await service.apply(
		gated.outsider, gated.clan.id, dto.ApplicationCreateRequest(answers={"age": "20", "why": "x"})
	)
	accept = dto.ApplicationHandleRequest(status="accepted")

	resolved = await service.handle(gated.officer, submitted.id, accept)
	assert resolved.status == "accepted"
	assert resolved.handled_by == gated.officer_id
	member = await gated.repo.get_member(gated.clan.id, gated.outsider_id)
	assert member.role_id == gated.default_role.id

	with pytest.raises(ConflictError) as exc:
		await service.handle(gated.owner, submitted.id, accept)
	assert exc.value.detail == "application_already_processed"


@pytest.mark.asyncio
async def test_accept_conflict_keeps_application_pending(gated):
	service = ApplicationsService(repository=gated.repo)
	submitted = await service.apply(
		gated.outsider, gated.clan.id, dto.ApplicationCreateRequest(answers={"age": "20", "why": "x"})
	)
	other = await ClanWorld(gated.repo).build(tag="bears")
	gated.repo.seed_member(other.clan.id, gated.outsider_id, other.default_role.id)

	with pytest.raises(ConflictError) as exc:
		await service.handle(gated.officer, submitted.id, dto.ApplicationHandleRequest(status="accepted"))
	assert exc.value.detail == "already_in_clan"
	assert (await gated.repo.get_application(submitted.id)).status == "pending"


@pytest.mark.asyncio
async def test_handling_requires_accept_toggle(gated):
	service = ApplicationsService(repository=gated.repo)
	submitted = await service.apply(
		gated.outsider, gated.clan.id, dto.ApplicationCreateRequest(answers={"age": "20", "why": "x"})
	)
	with pytest.raises(ForbiddenError):
		await service.handle(gated.member, submitted.id, dto.ApplicationHandleRequest(status="rejected"))

	rejected = await service.handle(gated.owner, submitted.id, dto.ApplicationHandleRequest(status="rejected"))
	assert rejected.status == "rejected"
	assert await gated.repo.get_member(gated.clan.id, gated.outsider_id) is None


@pytest.mark.asyncio
async def test_invitation_accept_seats_default_role(world):
	service = InvitationsService(repository=world.repo)
	invitation = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))

	assert [item.id for item in await service.list_for_user(world.outsider)] == [invitation.id]
	member = await service.accept(world.outsider, invitation.id)

	assert member.role_id == world.default_role.id
	assert await world.repo.get_invitation(invitation.id) is None


@pytest.mark.asyncio
async def test_invitation_guards(world):
	service = InvitationsService(repository=world.repo)
	with pytest.raises(ValidationError) as self_exc:
		await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.officer_id))
	assert self_exc.value.detail == "cannot_invite_self"

	with pytest.raises(ConflictError) as member_exc:
		await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.member_id))
	assert member_exc.value.detail == "invitee_already_in_clan"

	with pytest.raises(ForbiddenError):
		await service.create(world.member, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))

	await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))
	with pytest.raises(ConflictError) as pending_exc:
		await service.create(world.owner, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))
	assert pending_exc.value.detail == "invitation_pending"


@pytest.mark.asyncio
async def test_expired_invitation_cannot_be_accepted(world):
	service = InvitationsService(repository=world.repo)
	invitation = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))
	world.repo.backdate_invitation(invitation.id, hours=49)

	assert await service.list_for_user(world.outsider) == []
	with pytest.raises(NotFoundError) as exc:
		await service.accept(world.outsider, invitation.id)
	assert exc.value.detail == "invitation_expired"
	assert (await world.repo.get_invitation(invitation.id)).status == "expired"
	assert await world.repo.get_member(world.clan.id, world.outsider_id) is None

	reissued = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))
	assert reissued.id != invitation.id


@pytest.mark.asyncio
async def test_invitation_for_someone_else_is_not_found(world):
	service = InvitationsService(repository=world.repo)
	invitation = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))
	stranger = user(uuid4())
	with pytest.raises(NotFoundError):
		await service.accept(stranger, invitation.id)
	with pytest.raises(NotFoundError):
		await service.decline(stranger, invitation.id)


@pytest.mark.asyncio
async def test_decline_and_cancel_remove_invitation(world):
	service = InvitationsService(repository=world.repo)
	first = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))
	await service.decline(world.outsider, first.id)
	assert await world.repo.get_invitation(first.id) is None

	second = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))
	with pytest.raises(ForbiddenError):
		await service.cancel(world.member, world.clan.id, second.id)
	await service.cancel(world.officer, world.clan.id, second.id)
	assert await service.list_for_clan(world.owner, world.clan.id) == []


@pytest.mark.asyncio
async def test_application_round_trip_lands_on_default_role(clans_repo):
	world = await ClanWorld(clans_repo).build(join_type="application")
	await clans_repo.update_clan(world.clan.id, application_template=[models.ApplicationField(label="age")])
	applications = ApplicationsService(repository=clans_repo)

	submitted = await applications.apply(world.outsider, world.clan.id, dto.ApplicationCreateRequest(answers={"age": "17"}))
	await applications.handle(world.officer, submitted.id, dto.ApplicationHandleRequest(status="accepted"))

	members = await MembershipService(repository=clans_repo).list_members(world.clan.id)
	joined = next(member for member in members if member.user_id == world.outsider_id)
	assert joined.role_id == world.default_role.id
	assert (await clans_repo.get_application(submitted.id)).status == "accepted"


def _stored_invitation_statuses() -> set[str]:
	schema = (Path(__file__).resolve().parents[2] / "migrations" / "0001_clans.sql").read_text()
	table = schema.split("CREATE TABLE IF NOT EXISTS clan_invitations", 1)[1].split(");", 1)[0]
	check = re.search(r"CHECK \(status IN \(([^)]*)\)\)", table)
	assert check is not None
	return {value.strip().strip("'") for value in check.group(1).split(",")}


@pytest.mark.asyncio
async def test_invitation_rows_only_hold_storable_statuses(world):
	service = InvitationsService(repository=world.repo)
	accepted = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=world.outsider_id))
	await service.accept(world.outsider, accepted.id)

	declined_by = uuid4()
	declined = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=declined_by))
	await service.decline(user(declined_by), declined.id)

	stale = await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=uuid4()))
	world.repo.backdate_invitation(stale.id, hours=49)
	await world.repo.expire_invitations(now=utcnow())
	await service.create(world.officer, world.clan.id, dto.InvitationCreateRequest(user_id=uuid4()))

	stored = {invitation.status for invitation in world.repo.invitations.values()}
	assert stored == {"pending", "expired"}
	assert stored <= _stored_invitation_statuses()
