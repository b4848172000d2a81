"""Role management for clans."""

from __future__ import annotations

from uuid import UUID

from clanhall.clans.domain import models, policies, repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid
from clanhall.clans.domain.exceptions import ForbiddenError, NotFoundError
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser


class RolesService(ClanContextMixin):
	"""Handles role listing, creation, edits and deletion within a clan."""

	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def _require_role(self, clan: models.Clan, role_id: UUID) -> models.ClanRole:
		role = await self.repo.get_role(role_id)
		if role is None or role.clan_id != clan.id:
			raise NotFoundError("role_not_found")
		return role

	@staticmethod
	def _ensure_below_actor(clan: models.Clan, actor: models.ClanMember, role: models.ClanRole) -> None:
		if policies.is_owner(clan, actor.user_id):
			return
		if role.power_level >= actor.power_level:
			raise ForbiddenError("role_exceeds_actor")

	async def list_roles(self, clan_id: UUID) -> list[dto.RoleResponse]:
		clan = await self._require_clan(clan_id)
		roles = await self.repo.list_roles(clan.id)
		return [dto.role_response(role) for role in roles]

	async def create_role(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		payload: dto.RoleCreateRequest,
	) -> dto.RoleResponse:
		clan = await self._require_clan(clan_id)
		actor = policies.require_toggle(clan, await self._actor(clan, user), "can_edit_roles")
		policies.ensure_custom_power(payload.power_level, actor.role)
		role = await self.repo.create_role(
			clan_id=clan.id,
			name=payload.name,
			color=payload.color,
			power_level=payload.power_level,
			permissions=payload.permissions.to_storage(),
		)
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action="role.create",
			details={"role_id": str(role.id), "power_level": role.power_level},
		)
		return dto.role_response(role)

	async def update_role(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		role_id: UUID,
		payload: dto.RoleUpdateRequest,
	) -> dto.RoleResponse:
		clan = await self._require_clan(clan_id)
		actor = policies.require_toggle(clan, await self._actor(clan, user), "can_edit_roles")
		role = await self._require_role(clan, role_id)
		provided = set(payload.model_fields_set)
		if role.is_system_role:
			policies.require_owner(clan, actor.user_id)
			policies.ensure_system_role_patch(role, provided)
		else:
			self._ensure_below_actor(clan, actor, role)
			if "power_level" in provided and payload.power_level is not None:
				policies.ensure_custom_power(payload.power_level, actor.role)
		changes: dict = {}
		if "name" in provided and payload.name is not None:
			changes["name"] = payload.name
		if "color" in provided:
			changes["color"] = payload.color
		if "power_level" in provided and payload.power_level is not None:
			changes["power_level"] = payload.power_level
		if "permissions" in provided and payload.permissions is not None:
			changes["permissions"] = payload.permissions.to_storage()
		updated = await self.repo.update_role(role.id, **changes)
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action="role.update",
			details={"role_id": str(role.id), "fields": sorted(changes)},
		)
		return dto.role_response(updated)

	async def delete_role(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		role_id: UUID,
		*,
		migrate_to: UUID | None = None,
	) -> dto.RoleDeleteResponse:
		clan = await self._require_clan(clan_id)
		actor = policies.require_toggle(clan, await self._actor(clan, user), "can_edit_roles")
		role = await self._require_role(clan, role_id)
		if role.is_system_role:
			policies.ensure_role_deletable(role, 0)
		self._ensure_below_actor(clan, actor, role)
		member_count = await self.repo.count_role_members(role.id)
		target: models.ClanRole | None = None
		if member_count and migrate_to is not None:
			target = policies.ensure_migration_target(role, await self.repo.get_role(migrate_to))
			self._ensure_below_actor(clan, actor, target)
		else:
			policies.ensure_role_deletable(role, member_count)
		migrated = await self.repo.delete_role(role.id, migrate_to=target.id if target else None)
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action="role.delete",
			details={
				"role_id": str(role.id),
				"migrate_to": str(target.id) if target else None,
				"migrated_members": migrated,
			},
		)
		return dto.RoleDeleteResponse(deleted=True, migrated_members=migrated)
