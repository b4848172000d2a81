"""Membership lifecycle: joining open clans, leaving, kicks, role changes and mutes."""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from clanhall.clans.domain import models, policies, repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid, utcnow
from clanhall.clans.domain.exceptions import ConflictError, ForbiddenError, NotFoundError
from clanhall.clans.schemas import dto
from clanhall.clans.sockets import server as clan_sockets
from clanhall.infra.auth import AuthenticatedUser
from clanhall.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class MembershipService(ClanContextMixin):
	"""Owns the one-membership-per-user funnel outside applications and invitations."""

	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def list_members(self, clan_id: UUID) -> list[dto.MemberResponse]:
		clan = await self._require_clan(clan_id)
		members = await self.repo.list_members(clan.id)
		return [dto.member_response(member) for member in members]

	async def join_open(self, user: AuthenticatedUser, clan_id: UUID) -> dto.MemberResponse:
		clan = await self._require_clan(clan_id)
		if clan.join_type != "open":
			raise ForbiddenError("clan_not_open")
		user_id = user_uuid(user)
		if await self.repo.get_membership_for_user(user_id) is not None:
			raise ConflictError("already_in_clan")
		default_role = await self._default_role(clan.id)
		member = await self.repo.add_member(clan_id=clan.id, user_id=user_id, role_id=default_role.id)
		obs_metrics.membership_changed("join")
		await clan_sockets.publish_clan(clan.id, "clan:member.joined", {"user_id": str(user_id)})
		return dto.member_response(member)

	async def leave(self, user: AuthenticatedUser, clan_id: UUID) -> None:
		clan = await self._require_clan(clan_id)
		member = policies.require_member(await self._actor(clan, user))
		if policies.is_owner(clan, member.user_id):
			raise ForbiddenError("owner_must_transfer")
		if not await self.repo.remove_member(clan_id=clan.id, user_id=member.user_id, now=utcnow()):
			raise NotFoundError("member_not_found")
		obs_metrics.membership_changed("leave")
		await clan_sockets.publish_clan(clan.id, "clan:member.left", {"user_id": str(member.user_id)})
		await clan_sockets.evict_user(clan.id, member.user_id)

	async def kick(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		target_id: UUID,
		*,
		reason: str | None = None,
	) -> None:
		clan = await self._require_clan(clan_id)
		actor = await self._actor(clan, user)
		target = await self._require_target(clan, target_id)
		policies.ensure_can_act_on(clan, actor, target, "kick")
		# a concurrent kick may already have removed the row
		if not await self.repo.remove_member(clan_id=clan.id, user_id=target.user_id, now=utcnow()):
			raise NotFoundError("member_not_found")
		obs_metrics.membership_changed("kick")
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action="member.kick",
			details={"target_user_id": str(target.user_id), "reason": reason},
		)
		await clan_sockets.evict_user(clan.id, target.user_id)
		await clan_sockets.publish_clan(clan.id, "clan:member.kicked", {"user_id": str(target.user_id)})
		await clan_sockets.publish_user(target.user_id, "clan:kicked", {"clan_id": str(clan.id), "reason": reason})

	async def change_role(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		target_id: UUID,
		payload: dto.MemberRoleUpdateRequest,
	) -> dto.MemberResponse:
		clan = await self._require_clan(clan_id)
		actor = await self._actor(clan, user)
		target = await self._require_target(clan, target_id)
		new_role = await self.repo.get_role(payload.role_id)
		action = policies.ensure_role_change(clan, actor, target, new_role)
		updated = await self.repo.update_member_role(clan_id=clan.id, user_id=target.user_id, role_id=payload.role_id)
		obs_metrics.membership_changed(action)
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action=f"member.{action}",
			details={
				"target_user_id": str(target.user_id),
				"from_role_id": str(target.role_id),
				"to_role_id": str(payload.role_id),
			},
		)
		await clan_sockets.publish_clan(
			clan.id,
			"clan:member.role_changed",
			{"user_id": str(target.user_id), "role_id": str(payload.role_id)},
		)
		if not policies.has_toggle(clan, updated, "can_access_admin_chat"):
			await clan_sockets.evict_user(clan.id, target.user_id, channels=("admin",))
		return dto.member_response(updated)

	async def shift_role(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		target_id: UUID,
		*,
		steps: int,
	) -> dto.MemberResponse:
		"""Move the target ``steps`` roles up (positive) or down (negative) the ladder."""
		clan = await self._require_clan(clan_id)
		target = await self._require_target(clan, target_id)
		ladder = [role for role in await self.repo.list_roles(clan.id) if role.power_level < policies.OWNER_POWER]
		ladder.sort(key=lambda role: role.power_level)
		position = next((idx for idx, role in enumerate(ladder) if role.id == target.role_id), None)
		if position is None:
			raise ForbiddenError("cannot_target_owner")
		new_position = min(max(position + steps, 0), len(ladder) - 1)
		if new_position == position:
			raise ConflictError("no_role_in_direction")
		payload = dto.MemberRoleUpdateRequest(role_id=ladder[new_position].id)
		return await self.change_role(user, clan_id, target_id, payload)

	async def mute(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		target_id: UUID,
		payload: dto.MuteRequest,
	) -> dto.MemberResponse:
		clan = await self._require_clan(clan_id)
		actor = await self._actor(clan, user)
		target = await self._require_target(clan, target_id)
		policies.ensure_can_act_on(clan, actor, target, "mute")
		muted_until = utcnow() + timedelta(minutes=payload.duration_minutes)
		updated = await self.repo.set_mute(
			clan_id=clan.id,
			user_id=target.user_id,
			muted_until=muted_until,
			reason=payload.reason,
		)
		obs_metrics.membership_changed("mute")
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action="member.mute",
			details={"target_user_id": str(target.user_id), "minutes": payload.duration_minutes},
		)
		return dto.member_response(updated)

	async def unmute(self, user: AuthenticatedUser, clan_id: UUID, target_id: UUID) -> dto.MemberResponse:
		clan = await self._require_clan(clan_id)
		actor = await self._actor(clan, user)
		target = await self._require_target(clan, target_id)
		policies.ensure_can_act_on(clan, actor, target, "mute")
		if not target.is_muted(utcnow()):
			raise ConflictError("member_not_muted")
		updated = await self.repo.set_mute(clan_id=clan.id, user_id=target.user_id, muted_until=None, reason=None)
		obs_metrics.membership_changed("unmute")
		return dto.member_response(updated)

	async def ensure_can_post(self, member: models.ClanMember) -> models.ClanMember:
		"""Reject muted members, clearing a mute whose window has passed."""
		now = utcnow()
		if member.muted_until is None:
			return member
		if member.is_muted(now):
			raise ForbiddenError("member_muted", context={"muted_until": member.muted_until.isoformat()})
		_LOG.info("clans.mute.expired", extra={"clan_id": str(member.clan_id), "user_id": str(member.user_id)})
		return await self.repo.set_mute(clan_id=member.clan_id, user_id=member.user_id, muted_until=None, reason=None)
