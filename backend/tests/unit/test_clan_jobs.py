from __future__ import annotations

from datetime import timedelta

import pytest

from clanhall.clans.domain.context import utcnow
from clanhall.clans.infra.scheduler import build_scheduler
from clanhall.clans.jobs.invitation_reaper import InvitationReaper
from clanhall.clans.jobs.mute_expiry import MuteExpiryJob


@pytest.mark.asyncio
async def test_invitation_reaper_expires_only_elapsed_rows(world):
	now = utcnow()
	stale = await world.repo.create_invitation(
		clan_id=world.clan.id,
		invitee_id=world.outsider_id,
		inviter_id=world.owner_id,
		expires_at=now - timedelta(minutes=1),
		now=now - timedelta(hours=49),
	)
	fresh = await world.repo.create_invitation(
		clan_id=world.clan.id,
		invitee_id=world.member_id,
		inviter_id=world.owner_id,
		expires_at=now + timedelta(hours=1),
		now=now,
	)

	expired = await InvitationReaper(repository=world.repo).run_once()

	assert expired == 1
	assert (await world.repo.get_invitation(stale.id)).status == "expired"
	assert (await world.repo.get_invitation(fresh.id)).status == "pending"
	assert await InvitationReaper(repository=world.repo).run_once() == 0


@pytest.mark.asyncio
async def test_mute_expiry_clears_elapsed_mutes(world):
	now = utcnow()
	await world.repo.set_mute(clan_id=world.clan.id, user_id=world.member_id, muted_until=now - timedelta(seconds=1), reason="a")
	await world.repo.set_mute(clan_id=world.clan.id, user_id=world.officer_id, muted_until=now + timedelta(hours=1), reason="b")

	cleared = await MuteExpiryJob(repository=world.repo).run_once()

	assert cleared == 1
	assert (await world.repo.get_member(world.clan.id, world.member_id)).muted_until is None
	assert (await world.repo.get_member(world.clan.id, world.officer_id)).mute_reason == "b"


@pytest.mark.asyncio
async def test_job_failure_propagates():
	class Broken:
		async def expire_invitations(self, *, now):
			raise RuntimeError("db down")

	with pytest.raises(RuntimeError):
		await InvitationReaper(repository=Broken()).run_once()


def test_build_scheduler_registers_maintenance_jobs():
	scheduler = build_scheduler()
	assert sorted(scheduler.job_ids()) == ["clans-invitation-reaper", "clans-mute-expiry"]
	assert scheduler.running is False
	scheduler.shutdown()
