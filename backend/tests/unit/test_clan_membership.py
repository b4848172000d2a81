from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from clanhall.clans.domain.context import utcnow
from clanhall.clans.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clanhall.clans.domain.membership_service import MembershipService
from clanhall.clans.schemas import dto
from clan_fakes import ClanWorld


@pytest.mark.asyncio
async def test_join_open_clan_seats_default_role(world):
	service = MembershipService(repository=world.repo)
	joined = await service.join_open(world.outsider, world.clan.id)
	assert joined.role_id == world.default_role.id
	assert joined.power_level == 10
	assert await world.repo.has_member_history(world.clan.id, world.outsider_id)


@pytest.mark.asyncio
async def test_user_holds_at_most_one_membership(world):
	service = MembershipService(repository=world.repo)
	second = await ClanWorld(world.repo).build(tag="bears")

	with pytest.raises(ConflictError) as exc:
		await service.join_open(world.member, second.clan.id)
	assert exc.value.detail == "already_in_clan"

	memberships = [key for key in world.repo.members if key[1] == world.member_id]
	assert len(memberships) == 1


@pytest.mark.asyncio
async def test_join_rejects_non_open_clan(clans_repo):
	world = await ClanWorld(clans_repo).build(join_type="application")
	with pytest.raises(ForbiddenError) as exc:
		await MembershipService(repository=clans_repo).join_open(world.outsider, world.clan.id)
	assert exc.value.detail == "clan_not_open"


@pytest.mark.asyncio
async def test_owner_cannot_leave_without_transfer(world):
	service = MembershipService(repository=world.repo)
	with pytest.raises(ForbiddenError) as exc:
		await service.leave(world.owner, world.clan.id)
	assert exc.value.detail == "owner_must_transfer"

	await service.leave(world.member, world.clan.id)
	assert await world.repo.get_member(world.clan.id, world.member_id) is None
	history = [entry for entry in world.repo.history if entry.user_id == world.member_id]
	assert history[0].left_at is not None


@pytest.mark.asyncio
async def test_kick_follows_power_thresholds(world):
	service = MembershipService(repository=world.repo)
	with pytest.raises(ForbiddenError) as upward:
		await service.kick(world.member, world.clan.id, world.officer_id)
	assert upward.value.detail == "insufficient_power"

	with pytest.raises(ForbiddenError) as owner:
		await service.kick(world.officer, world.clan.id, world.owner_id)
	assert owner.value.detail == "cannot_target_owner"

	await service.kick(world.officer, world.clan.id, world.member_id, reason="spam")
	assert await world.repo.get_member(world.clan.id, world.member_id) is None
	assert world.repo.audit[-1]["details"]["reason"] == "spam"

	with pytest.raises(NotFoundError):
		await service.kick(world.officer, world.clan.id, world.member_id)


@pytest.mark.asyncio
async def test_kick_blocked_when_threshold_not_above_target(world):
	service = MembershipService(repository=world.repo)
	veteran_role = world.repo.seed_role(world.clan.id, name="Veteran", power_level=100)
	veteran_id = uuid4()
	world.repo.seed_member(world.clan.id, veteran_id, veteran_role.id)

	with pytest.raises(ForbiddenError) as exc:
		await service.kick(world.officer, world.clan.id, veteran_id)
	assert exc.value.context == {"action": "kick"}


@pytest.mark.asyncio
async def test_change_role_promotes_and_demotes(world):
	service = MembershipService(repository=world.repo)
	scout = world.repo.seed_role(world.clan.id, name="Scout", power_level=50)

	promoted = await service.change_role(world.officer, world.clan.id, world.member_id, dto.MemberRoleUpdateRequest(role_id=scout.id))
	assert promoted.role_id == scout.id
	assert world.repo.audit[-1]["action"] == "member.promote"

	demoted = await service.change_role(
		world.officer,
		world.clan.id,
		world.member_id,
		dto.MemberRoleUpdateRequest(role_id=world.default_role.id),
	)
	assert demoted.power_level == 10
	assert world.repo.audit[-1]["action"] == "member.demote"


@pytest.mark.asyncio
async def test_change_role_never_assigns_owner_role(world):
	service = MembershipService(repository=world.repo)
	with pytest.raises(ForbiddenError) as exc:
		await service.change_role(
			world.owner,
			world.clan.id,
			world.member_id,
			dto.MemberRoleUpdateRequest(role_id=world.owner_role.id),
		)
	assert exc.value.detail == "owner_role_not_assignable"


@pytest.mark.asyncio
async def test_change_role_rejects_same_role(world):
	service = MembershipService(repository=world.repo)
	with pytest.raises(ValidationError) as exc:
		await service.change_role(
			world.owner,
			world.clan.id,
			world.member_id,
			dto.MemberRoleUpdateRequest(role_id=world.default_role.id),
		)
	assert exc.value.detail == "role_unchanged"


@pytest.mark.asyncio
async def test_shift_role_walks_the_ladder(world):
	service = MembershipService(repository=world.repo)
	world.repo.seed_role(world.clan.id, name="Scout", power_level=50)

	up = await service.shift_role(world.owner, world.clan.id, world.member_id, steps=1)
	assert up.power_level == 50
	top = await service.shift_role(world.owner, world.clan.id, world.member_id, steps=5)
	assert top.power_level == 500

	with pytest.raises(ConflictError) as exc:
		await service.shift_role(world.owner, world.clan.id, world.member_id, steps=1)
	assert exc.value.detail == "no_role_in_direction"


@pytest.mark.asyncio
async def test_mute_and_unmute(world):
	service = MembershipService(repository=world.repo)
	muted = await service.mute(world.officer, world.clan.id, world.member_id, dto.MuteRequest(reason="caps", duration_minutes=30))
	assert muted.mute_reason == "caps"
	assert muted.muted_until > utcnow() + timedelta(minutes=29)

	member = await world.repo.get_member(world.clan.id, world.member_id)
	with pytest.raises(ForbiddenError) as exc:
		await service.ensure_can_post(member)
	assert exc.value.detail == "member_muted"

	unmuted = await service.unmute(world.officer, world.clan.id, world.member_id)
	assert unmuted.muted_until is None
	with pytest.raises(ConflictError):
		await service.unmute(world.officer, world.clan.id, world.member_id)


@pytest.mark.asyncio
async def test_expired_mute_is_cleared_on_post(world):
	service = MembershipService(repository=world.repo)
	await world.repo.set_mute(
		clan_id=world.clan.id,
		user_id=world.member_id,
		muted_until=utcnow() - timedelta(minutes=1),
		reason="old",
	)
	member = await world.repo.get_member(world.clan.id, world.member_id)

	cleared = await service.ensure_can_post(member)

	assert cleared.muted_until is None
	assert cleared.mute_reason is None


@pytest.mark.asyncio
async def test_list_members(world):
	members = await MembershipService(repository=world.repo).list_members(world.clan.id)
	assert {member.user_id for member in members} == {world.owner_id, world.officer_id, world.member_id}
