"""Lookup helpers shared by clan services."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from clanhall.clans.domain import models, policies, repo as repo_module
from clanhall.clans.domain.exceptions import NotFoundError, ValidationError
from clanhall.infra.auth import AuthenticatedUser


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def user_uuid(user: AuthenticatedUser) -> UUID:
	try:
		return UUID(str(user.id))
	except ValueError as exc:
		raise ValidationError("invalid_user_id") from exc


class ClanContextMixin:
	"""Resolves clans, memberships and system roles for a service."""

	repo: repo_module.ClansRepository

	async def _require_clan(self, clan_id: UUID) -> models.Clan:
		clan = await self.repo.get_clan(clan_id)
		if clan is None:
			raise NotFoundError("clan_not_found")
		return clan

	async def _require_clan_by_tag(self, tag: str) -> models.Clan:
		clan = await self.repo.get_clan_by_tag(tag)
		if clan is None:
			raise NotFoundError("clan_not_found")
		return clan

	async def _actor(self, clan: models.Clan, user: AuthenticatedUser) -> models.ClanMember | None:
		return await self.repo.get_member(clan.id, user_uuid(user))

	async def _require_target(self, clan: models.Clan, user_id: UUID) -> models.ClanMember:
		member = await self.repo.get_member(clan.id, user_id)
		if member is None:
			raise NotFoundError("member_not_found")
		return member

	async def _default_role(self, clan_id: UUID) -> models.ClanRole:
		role = await self.repo.get_role_by_power(clan_id, policies.DEFAULT_POWER)
		if role is None:
			raise NotFoundError("default_role_missing")
		return role

	async def _owner_role(self, clan_id: UUID) -> models.ClanRole:
		role = await self.repo.get_role_by_power(clan_id, policies.OWNER_POWER)
		if role is None:
			raise NotFoundError("owner_role_missing")
		return role
