"""Warnings issued by moderators against clan members."""

from __future__ import annotations

from uuid import UUID

from clanhall.clans.domain import policies, repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid
from clanhall.clans.domain.exceptions import NotFoundError
from clanhall.clans.schemas import dto
from clanhall.clans.sockets import server as clan_sockets
from clanhall.infra.auth import AuthenticatedUser
from clanhall.obs import metrics as obs_metrics


class WarningsService(ClanContextMixin):
	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def issue(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		target_id: UUID,
		payload: dto.WarningCreateRequest,
	) -> dto.WarningResponse:
		clan = await self._require_clan(clan_id)
		actor = await self._actor(clan, user)
		target = await self._require_target(clan, target_id)
		actor = policies.ensure_can_act_on(clan, actor, target, "warn")
		warning = await self.repo.create_warning(
			clan_id=clan.id,
			actor_id=actor.user_id,
			target_id=target.user_id,
			reason=payload.reason,
		)
		obs_metrics.WARNINGS_ISSUED.inc()
		response = dto.WarningResponse(**warning.model_dump())
		await clan_sockets.publish_user(target.user_id, "clan:warning", response.model_dump(mode="json"))
		return response

	async def list_for_clan(self, user: AuthenticatedUser, clan_id: UUID) -> list[dto.WarningResponse]:
		clan = await self._require_clan(clan_id)
		policies.ensure_can_view_warnings(clan, await self._actor(clan, user))
		warnings = await self.repo.list_warnings(clan.id)
		return [dto.WarningResponse(**warning.model_dump()) for warning in warnings]

	async def list_mine(self, user: AuthenticatedUser) -> list[dto.WarningResponse]:
		membership = await self.repo.get_membership_for_user(user_uuid(user))
		if membership is None:
			return []
		warnings = await self.repo.list_warnings(membership.clan_id, target_id=membership.user_id)
		return [dto.WarningResponse(**warning.model_dump()) for warning in warnings]

	async def delete(self, user: AuthenticatedUser, clan_id: UUID, warning_id: UUID) -> None:
		"""Revocation is unconditional once the caller may view the warnings list."""
		clan = await self._require_clan(clan_id)
		policies.ensure_can_view_warnings(clan, await self._actor(clan, user))
		warning = await self.repo.get_warning(warning_id)
		if warning is None or warning.clan_id != clan.id:
			raise NotFoundError("warning_not_found")
		if not await self.repo.delete_warning(warning.id):
			raise NotFoundError("warning_not_found")
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action="warning.delete",
			details={"warning_id": str(warning.id), "target_user_id": str(warning.target_id)},
		)

	async def revoke_latest(self, user: AuthenticatedUser, clan_id: UUID, target_id: UUID) -> dto.WarningResponse:
		clan = await self._require_clan(clan_id)
		policies.ensure_can_view_warnings(clan, await self._actor(clan, user))
		warnings = await self.repo.list_warnings(clan.id, target_id=target_id)
		if not warnings:
			raise NotFoundError("warning_not_found")
		latest = warnings[0]
		await self.delete(user, clan_id, latest.id)
		return dto.WarningResponse(**latest.model_dump())
