"""Clan lifecycle: creation, catalogue, detail edits and deletion."""

from __future__ import annotations

import logging
from uuid import UUID

from clanhall.clans.domain import models, policies, repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid, utcnow
from clanhall.clans.domain.exceptions import ConflictError, ForbiddenError, NotFoundError
from clanhall.clans.infra import idempotency
from clanhall.clans.schemas import dto
from clanhall.clans.sockets import server as clan_sockets
from clanhall.infra.auth import AuthenticatedUser
from clanhall.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


def system_role_specs() -> list[dict]:
	"""Owner first, then Default; the owner is seated on the first entry."""
	return [
		{
			"name": policies.OWNER_ROLE_NAME,
			"color": "#f1c40f",
			"power_level": policies.OWNER_POWER,
			"permissions": models.RolePermissions.everything().to_storage(),
		},
		{
			"name": policies.DEFAULT_ROLE_NAME,
			"color": "#95a5a6",
			"power_level": policies.DEFAULT_POWER,
			"permissions": models.RolePermissions().to_storage(),
		},
	]


class ClansService(ClanContextMixin):
	"""Creates, lists, edits and deletes clans."""

	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def create_clan(
		self,
		user: AuthenticatedUser,
		payload: dto.ClanCreateRequest,
		*,
		idempotency_key: str | None = None,
	) -> dto.ClanResponse:
		async def _produce() -> dto.ClanResponse:
			owner_id = user_uuid(user)
			if await self.repo.get_membership_for_user(owner_id) is not None:
				raise ConflictError("already_in_clan")
			clan = await self.repo.create_clan(
				name=payload.name,
				tag=payload.tag,
				description=payload.description,
				join_type=payload.join_type,
				owner_id=owner_id,
				card_icon_url=payload.card_icon_url,
				card_image_url=payload.card_image_url,
				system_roles=system_role_specs(),
			)
			obs_metrics.CLANS_CREATED.inc()
			obs_metrics.membership_changed("create")
			await self.repo.record_audit_event(
				clan_id=clan.id,
				user_id=owner_id,
				action="clan.create",
				details={"tag": clan.tag},
			)
			_LOG.info("clans.created", extra={"clan_id": str(clan.id), "tag": clan.tag})
			return dto.clan_response(clan, member_count=1)

		return await idempotency.resolve(
			key=idempotency_key,
			scope=f"create:{user.id}",
			body_hash=idempotency.compute_hash(body=payload.model_dump(mode="json")),
			producer=_produce,
			serializer=lambda result: result.model_dump(mode="json"),
			deserializer=dto.ClanResponse.model_validate,
		)

	async def list_clans(self, *, search: str | None, page: int, limit: int) -> dto.ClanListResponse:
		summaries, total = await self.repo.list_clans(search=search, limit=limit, offset=(page - 1) * limit)
		items = [dto.clan_response(item.clan, member_count=item.member_count) for item in summaries]
		return dto.ClanListResponse(items=items, total=total, page=page, limit=limit)

	async def get_clan_detail(self, user: AuthenticatedUser | None, tag: str) -> dto.ClanDetailResponse:
		clan = await self._require_clan_by_tag(tag)
		roles = await self.repo.list_roles(clan.id)
		members = await self.repo.list_members(clan.id)
		viewer_role_id: UUID | None = None
		viewer_has_history = False
		if user is not None:
			viewer_id = user_uuid(user)
			viewer = next((member for member in members if member.user_id == viewer_id), None)
			viewer_role_id = viewer.role_id if viewer else None
			viewer_has_history = await self.repo.has_member_history(clan.id, viewer_id)
		members.sort(key=lambda member: member.power_level, reverse=True)
		return dto.ClanDetailResponse(
			clan=dto.clan_response(clan, member_count=len(members)),
			roles=[dto.role_response(role) for role in sorted(roles, key=lambda r: r.power_level, reverse=True)],
			members=[dto.member_response(member) for member in members],
			viewer_role_id=viewer_role_id,
			viewer_has_history=viewer_has_history,
		)

	async def update_details(
		self,
		user: AuthenticatedUser,
		tag: str,
		payload: dto.ClanDetailsUpdateRequest,
	) -> dto.ClanResponse:
		clan = await self._require_clan_by_tag(tag)
		actor = await self._actor(clan, user)
		changes = {
			key: value
			for key, value in payload.model_dump(exclude_unset=True).items()
			if value is not None or key in dto.APPEARANCE_FIELDS
		}
		details = {key: value for key, value in changes.items() if key not in dto.APPEARANCE_FIELDS}
		appearance = {key: value for key, value in changes.items() if key in dto.APPEARANCE_FIELDS}
		if details or not appearance:
			policies.require_toggle(clan, actor, "can_edit_details")
		if appearance:
			policies.require_toggle(clan, actor, "can_edit_appearance")
		updated = await self.repo.update_clan(clan.id, **changes)
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action="clan.details.update",
			details={"fields": sorted(changes)},
		)
		return dto.clan_response(updated)

	async def update_settings(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		payload: dto.ClanSettingsUpdateRequest,
	) -> dto.ClanResponse:
		clan = await self._require_clan(clan_id)
		actor = await self._actor(clan, user)
		policies.require_member(actor)
		changes: dict = {}
		# an omitted or null template leaves the stored one untouched
		if payload.application_template is not None:
			policies.require_toggle(clan, actor, "can_edit_application_form")
			changes["application_template"] = [field.model_dump() for field in payload.application_template]
		if payload.join_type is not None:
			policies.require_toggle(clan, actor, "can_edit_details")
			changes["join_type"] = payload.join_type
		if not changes:
			return dto.clan_response(clan)
		updated = await self.repo.update_clan(clan.id, **changes)
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action="clan.settings.update",
			details={"fields": sorted(changes)},
		)
		return dto.clan_response(updated)

	async def delete_clan(self, user: AuthenticatedUser, tag: str) -> None:
		clan = await self._require_clan_by_tag(tag)
		if not policies.is_owner(clan, user_uuid(user)):
			raise ForbiddenError("owner_only")
		members = await self.repo.list_members(clan.id)
		if not await self.repo.delete_clan(clan.id, now=utcnow()):
			raise NotFoundError("clan_not_found")
		obs_metrics.CLANS_DELETED.inc()
		_LOG.info("clans.deleted", extra={"clan_id": str(clan.id), "tag": clan.tag})
		for member in members:
			await clan_sockets.evict_user(clan.id, member.user_id)
