"""Ownership transfer between clan members."""

from __future__ import annotations

import logging

from clanhall.clans.domain import policies, repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid
from clanhall.clans.domain.exceptions import ClanError
from clanhall.clans.schemas import dto
from clanhall.clans.sockets import server as clan_sockets
from clanhall.infra.auth import AuthenticatedUser
from clanhall.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class OwnershipService(ClanContextMixin):
	"""Validates every precondition up front, then swaps ownership in one transaction."""

	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def transfer(
		self,
		user: AuthenticatedUser,
		tag: str,
		payload: dto.OwnershipTransferRequest,
	) -> dto.ClanResponse:
		clan = await self._require_clan_by_tag(tag)
		caller_id = user_uuid(user)
		try:
			new_owner = await self.repo.get_member(clan.id, payload.new_owner_id)
			new_role = await self.repo.get_role(payload.old_owner_new_role_id)
			policies.ensure_transfer_allowed(
				clan=clan,
				caller_id=caller_id,
				new_owner=new_owner,
				old_owner_new_role=new_role,
				confirmation=payload.confirmation,
			)
			owner_role = await self._owner_role(clan.id)
			updated = await self.repo.transfer_ownership(
				clan_id=clan.id,
				expected_owner_id=caller_id,
				new_owner_id=payload.new_owner_id,
				owner_role_id=owner_role.id,
				old_owner_role_id=payload.old_owner_new_role_id,
			)
		except ClanError as exc:
			obs_metrics.ownership_transfer("rejected")
			_LOG.info("clans.ownership.rejected", extra={"clan_id": str(clan.id), "reason": exc.detail})
			raise
		obs_metrics.ownership_transfer("success")
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=caller_id,
			action="ownership.transfer",
			details={
				"new_owner_id": str(payload.new_owner_id),
				"old_owner_role_id": str(payload.old_owner_new_role_id),
			},
		)
		_LOG.info(
			"clans.ownership.transferred",
			extra={"clan_id": str(clan.id), "new_owner_id": str(payload.new_owner_id)},
		)
		await clan_sockets.publish_clan(
			clan.id,
			"clan:member.ownership_transferred",
			{"old_owner_id": str(caller_id), "new_owner_id": str(payload.new_owner_id)},
		)
		if not new_role.permissions.clan_permissions.can_access_admin_chat:
			await clan_sockets.evict_user(clan.id, caller_id, channels=("admin",))
		return dto.clan_response(updated)
