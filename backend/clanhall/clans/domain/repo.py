"""Async repository helpers for the clans domain."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence
from uuid import UUID, uuid4

import asyncpg

from clanhall.clans.domain import models
from clanhall.clans.domain.exceptions import ConflictError, NotFoundError
from clanhall.infra.postgres import get_pool

# unique index name -> conflict code surfaced to clients
_UNIQUE_CONFLICTS = {
	"clans_tag_unique": "clan_tag_taken",
	"clan_members_one_clan_per_user": "already_in_clan",
	"clan_members_clan_id_user_id_key": "already_in_clan",
	"clan_roles_power_unique": "power_level_taken",
	"clan_roles_name_unique": "role_name_taken",
	"clan_applications_pending_unique": "application_pending",
	"clan_invitations_pending_unique": "invitation_pending",
	"clan_reviews_clan_id_author_id_key": "review_exists",
}

_MEMBER_SELECT = """
	SELECT m.id, m.clan_id, m.user_id, m.role_id, m.joined_at, m.muted_until, m.mute_reason,
		r.name AS role_name, r.color AS role_color, r.power_level AS role_power_level,
		r.permissions AS role_permissions, r.is_system_role AS role_is_system_role,
		r.created_at AS role_created_at
	FROM clan_members m
	JOIN clan_roles r ON r.id = m.role_id
"""

_CLAN_UPDATABLE = frozenset(
	{
		"description",
		"join_type",
		"application_template",
		"card_color",
		"text_color",
		"card_icon_url",
		"card_image_url",
	}
)
_ROLE_UPDATABLE = frozenset({"name", "color", "power_level", "permissions"})


def _conflict(exc: asyncpg.UniqueViolationError, fallback: str) -> ConflictError:
	code = _UNIQUE_CONFLICTS.get(getattr(exc, "constraint_name", None) or "", fallback)
	return ConflictError(code)


def _member_from_record(record: asyncpg.Record) -> models.ClanMember:
	data = dict(record)
	role = models.ClanRole(
		id=data["role_id"],
		clan_id=data["clan_id"],
		name=data.pop("role_name"),
		color=data.pop("role_color"),
		power_level=data.pop("role_power_level"),
		permissions=models.RolePermissions.model_validate(data.pop("role_permissions") or {}),
		is_system_role=data.pop("role_is_system_role"),
		created_at=data.pop("role_created_at"),
	)
	return models.ClanMember(role=role, **data)


def _role_from_record(record: asyncpg.Record) -> models.ClanRole:
	return models.ClanRole.model_validate(dict(record))


class ClansRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Clan operations ---------------------------------------------------

	async def create_clan(
		self,
		*,
		name: str,
		tag: str,
		description: str,
		join_type: str,
		owner_id: UUID,
		card_icon_url: str | None,
		card_image_url: str | None,
		system_roles: Sequence[dict[str, Any]],
	) -> models.Clan:
		"""Insert the clan, its system roles and the owner's membership atomically.

		``system_roles`` is ordered owner first; the owner is seated on that role.
		"""
		pool = await get_pool()
		clan_id = uuid4()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					record = await conn.fetchrow(
						"""
						INSERT INTO clans (id, name, tag, description, join_type, owner_id, card_icon_url, card_image_url)
						VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
						RETURNING *
						""",
						clan_id,
						name,
						tag,
						description,
						join_type,
						owner_id,
						card_icon_url,
						card_image_url,
					)
					role_ids: list[UUID] = []
					for spec in system_roles:
						role_id = uuid4()
						await conn.execute(
							"""
							INSERT INTO clan_roles (id, clan_id, name, color, power_level, permissions, is_system_role)
							VALUES ($1, $2, $3, $4, $5, $6, TRUE)
							""",
							role_id,
							clan_id,
							spec["name"],
							spec.get("color"),
							spec["power_level"],
							spec["permissions"],
						)
						role_ids.append(role_id)
					await self._insert_member(conn, clan_id=clan_id, user_id=owner_id, role_id=role_ids[0])
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise _conflict(exc, "clan_tag_taken") from exc
		return models.Clan.model_validate(dict(record))

	async def get_clan(self, clan_id: UUID) -> models.Clan | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clans WHERE id=$1", clan_id)
		return models.Clan.model_validate(dict(record)) if record else None

	async def get_clan_by_tag(self, tag: str) -> models.Clan | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clans WHERE LOWER(tag)=LOWER($1)", tag)
		return models.Clan.model_validate(dict(record)) if record else None

	async def list_clans(self, *, search: str | None, limit: int, offset: int) -> tuple[list[models.ClanSummary], int]:
		pool = await get_pool()
		pattern = f"%{search.strip()}%" if search and search.strip() else None
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT c.*, (SELECT COUNT(*) FROM clan_members m WHERE m.clan_id = c.id) AS member_count
				FROM clans c
				WHERE $1::text IS NULL OR c.name ILIKE $1 OR c.tag ILIKE $1
				ORDER BY c.created_at DESC
				LIMIT $2 OFFSET $3
				""",
				pattern,
				limit,
				offset,
			)
			total = await conn.fetchval(
				"SELECT COUNT(*) FROM clans c WHERE $1::text IS NULL OR c.name ILIKE $1 OR c.tag ILIKE $1",
				pattern,
			)
		items = []
		for record in records:
			data = dict(record)
			member_count = data.pop("member_count")
			items.append(models.ClanSummary(clan=models.Clan.model_validate(data), member_count=member_count))
		return items, int(total or 0)

	async def update_clan(self, clan_id: UUID, **fields: Any) -> models.Clan:
		changes = {key: value for key, value in fields.items() if key in _CLAN_UPDATABLE}
		if not changes:
			clan = await self.get_clan(clan_id)
			if clan is None:
				raise NotFoundError("clan_not_found")
			return clan
		assignments = ", ".join(f"{column}=${idx}" for idx, column in enumerate(changes, start=2))
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				f"UPDATE clans SET {assignments}, updated_at=NOW() WHERE id=$1 RETURNING *",
				clan_id,
				*changes.values(),
			)
		if not record:
			raise NotFoundError("clan_not_found")
		return models.Clan.model_validate(dict(record))

	async def delete_clan(self, clan_id: UUID, *, now: datetime) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute(
					"UPDATE clan_member_history SET left_at=$2 WHERE clan_id=$1 AND left_at IS NULL",
					clan_id,
					now,
				)
				# roles, members, applications, invitations, warnings, reviews, messages cascade
				deleted = await conn.fetchval("DELETE FROM clans WHERE id=$1 RETURNING id", clan_id)
		return deleted is not None

	# --- Roles -------------------------------------------------------------

	async def list_roles(self, clan_id: UUID) -> list[models.ClanRole]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"SELECT * FROM clan_roles WHERE clan_id=$1 ORDER BY power_level DESC",
				clan_id,
			)
		return [_role_from_record(record) for record in records]

	async def get_role(self, role_id: UUID) -> models.ClanRole | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clan_roles WHERE id=$1", role_id)
		return _role_from_record(record) if record else None

	async def get_role_by_power(self, clan_id: UUID, power_level: int) -> models.ClanRole | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM clan_roles WHERE clan_id=$1 AND power_level=$2",
				clan_id,
				power_level,
			)
		return _role_from_record(record) if record else None

	async def get_role_by_name(self, clan_id: UUID, name: str) -> models.ClanRole | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM clan_roles WHERE clan_id=$1 AND LOWER(name)=LOWER($2)",
				clan_id,
				name,
			)
		return _role_from_record(record) if record else None

	async def create_role(
		self,
		*,
		clan_id: UUID,
		name: str,
		color: str | None,
		power_level: int,
		permissions: dict[str, Any],
	) -> models.ClanRole:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO clan_roles (id, clan_id, name, color, power_level, permissions, is_system_role)
					VALUES ($1, $2, $3, $4, $5, $6, FALSE)
					RETURNING *
					""",
					uuid4(),
					clan_id,
					name,
					color,
					power_level,
					permissions,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise _conflict(exc, "role_name_taken") from exc
		return _role_from_record(record)

	async def update_role(self, role_id: UUID, **fields: Any) -> models.ClanRole:
		changes = {key: value for key, value in fields.items() if key in _ROLE_UPDATABLE}
		if not changes:
			role = await self.get_role(role_id)
			if role is None:
				raise NotFoundError("role_not_found")
			return role
		assignments = ", ".join(f"{column}=${idx}" for idx, column in enumerate(changes, start=2))
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					f"UPDATE clan_roles SET {assignments} WHERE id=$1 RETURNING *",
					role_id,
					*changes.values(),
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise _conflict(exc, "role_name_taken") from exc
		if not record:
			raise NotFoundError("role_not_found")
		return _role_from_record(record)

	async def count_role_members(self, role_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			count = await conn.fetchval("SELECT COUNT(*) FROM clan_members WHERE role_id=$1", role_id)
		return int(count or 0)

	async def delete_role(self, role_id: UUID, *, migrate_to: UUID | None = None) -> int:
		"""Delete a role, optionally moving its holders first. Returns members migrated."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				migrated = 0
				if migrate_to is not None:
					status = await conn.execute(
						"UPDATE clan_members SET role_id=$2 WHERE role_id=$1",
						role_id,
						migrate_to,
					)
					migrated = int(status.split()[-1])
				try:
					deleted = await conn.fetchval("DELETE FROM clan_roles WHERE id=$1 RETURNING id", role_id)
				except asyncpg.ForeignKeyViolationError as exc:  # type: ignore[attr-defined]
					# a member was seated on the role after the guard ran
					raise ConflictError("role_in_use") from exc
				if deleted is None:
					raise NotFoundError("role_not_found")
		return migrated

	# --- Members -----------------------------------------------------------

	async def _insert_member(
		self,
		conn: asyncpg.Connection,
		*,
		clan_id: UUID,
		user_id: UUID,
		role_id: UUID,
	) -> None:
		await conn.execute(
			"INSERT INTO clan_members (id, clan_id, user_id, role_id) VALUES ($1, $2, $3, $4)",
			uuid4(),
			clan_id,
			user_id,
			role_id,
		)
		await conn.execute(
			"INSERT INTO clan_member_history (clan_id, user_id) VALUES ($1, $2)",
			clan_id,
			user_id,
		)

	async def _fetch_member(self, conn: asyncpg.Connection, clan_id: UUID, user_id: UUID) -> models.ClanMember | None:
		record = await conn.fetchrow(f"{_MEMBER_SELECT} WHERE m.clan_id=$1 AND m.user_id=$2", clan_id, user_id)
		return _member_from_record(record) if record else None

	async def get_member(self, clan_id: UUID, user_id: UUID) -> models.ClanMember | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			return await self._fetch_member(conn, clan_id, user_id)

	async def get_membership_for_user(self, user_id: UUID) -> models.ClanMember | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(f"{_MEMBER_SELECT} WHERE m.user_id=$1", user_id)
		return _member_from_record(record) if record else None

	async def list_members(self, clan_id: UUID) -> list[models.ClanMember]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				f"{_MEMBER_SELECT} WHERE m.clan_id=$1 ORDER BY r.power_level DESC, m.joined_at ASC",
				clan_id,
			)
		return [_member_from_record(record) for record in records]

	async def add_member(self, *, clan_id: UUID, user_id: UUID, role_id: UUID) -> models.ClanMember:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					await self._insert_member(conn, clan_id=clan_id, user_id=user_id, role_id=role_id)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise _conflict(exc, "already_in_clan") from exc
				member = await self._fetch_member(conn, clan_id, user_id)
		assert member is not None
		return member

	async def remove_member(self, *, clan_id: UUID, user_id: UUID, now: datetime) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				deleted = await conn.fetchval(
					"DELETE FROM clan_members WHERE clan_id=$1 AND user_id=$2 RETURNING id",
					clan_id,
					user_id,
				)
				if deleted is not None:
					await conn.execute(
						"""
						UPDATE clan_member_history SET left_at=$3
						WHERE clan_id=$1 AND user_id=$2 AND left_at IS NULL
						""",
						clan_id,
						user_id,
						now,
					)
		return deleted is not None

	async def update_member_role(self, *, clan_id: UUID, user_id: UUID, role_id: UUID) -> models.ClanMember:
		pool = await get_pool()
		async with pool.acquire() as conn:
			updated = await conn.fetchval(
				"UPDATE clan_members SET role_id=$3 WHERE clan_id=$1 AND user_id=$2 RETURNING id",
				clan_id,
				user_id,
				role_id,
			)
			if updated is None:
				raise NotFoundError("member_not_found")
			member = await self._fetch_member(conn, clan_id, user_id)
		assert member is not None
		return member

	async def set_mute(
		self,
		*,
		clan_id: UUID,
		user_id: UUID,
		muted_until: datetime | None,
		reason: str | None,
	) -> models.ClanMember:
		pool = await get_pool()
		async with pool.acquire() as conn:
			updated = await conn.fetchval(
				"UPDATE clan_members SET muted_until=$3, mute_reason=$4 WHERE clan_id=$1 AND user_id=$2 RETURNING id",
				clan_id,
				user_id,
				muted_until,
				reason,
			)
			if updated is None:
				raise NotFoundError("member_not_found")
			member = await self._fetch_member(conn, clan_id, user_id)
		assert member is not None
		return member

	async def clear_expired_mutes(self, *, now: datetime) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"UPDATE clan_members SET muted_until=NULL, mute_reason=NULL WHERE muted_until IS NOT NULL AND muted_until <= $1",
				now,
			)
		return int(status.split()[-1])

	async def has_member_history(self, clan_id: UUID, user_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			found = await conn.fetchval(
				"SELECT 1 FROM clan_member_history WHERE clan_id=$1 AND user_id=$2 LIMIT 1",
				clan_id,
				user_id,
			)
		return found is not None

	# --- Ownership ---------------------------------------------------------

	async def transfer_ownership(
		self,
		*,
		clan_id: UUID,
		expected_owner_id: UUID,
		new_owner_id: UUID,
		owner_role_id: UUID,
		old_owner_role_id: UUID,
	) -> models.Clan:
		"""Swap owner memberships and ``owner_id`` in one transaction."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				current = await conn.fetchval("SELECT owner_id FROM clans WHERE id=$1 FOR UPDATE", clan_id)
				if current is None:
					raise NotFoundError("clan_not_found")
				if current != expected_owner_id:
					raise ConflictError("ownership_changed")
				demoted = await conn.fetchval(
					"UPDATE clan_members SET role_id=$3 WHERE clan_id=$1 AND user_id=$2 RETURNING id",
					clan_id,
					expected_owner_id,
					old_owner_role_id,
				)
				promoted = await conn.fetchval(
					"UPDATE clan_members SET role_id=$3 WHERE clan_id=$1 AND user_id=$2 RETURNING id",
					clan_id,
					new_owner_id,
					owner_role_id,
				)
				if demoted is None or promoted is None:
					raise NotFoundError("member_not_found")
				record = await conn.fetchrow(
					"UPDATE clans SET owner_id=$2, updated_at=NOW() WHERE id=$1 RETURNING *",
					clan_id,
					new_owner_id,
				)
		return models.Clan.model_validate(dict(record))

	# --- Applications ------------------------------------------------------

	async def create_application(self, *, clan_id: UUID, user_id: UUID, answers: dict[str, str]) -> models.ClanApplication:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO clan_applications (id, clan_id, user_id, answers, status)
					VALUES ($1, $2, $3, $4, 'pending')
					RETURNING *
					""",
					uuid4(),
					clan_id,
					user_id,
					answers,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise _conflict(exc, "application_pending") from exc
		return models.ClanApplication.model_validate(dict(record))

	async def get_application(self, application_id: UUID) -> models.ClanApplication | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clan_applications WHERE id=$1", application_id)
		return models.ClanApplication.model_validate(dict(record)) if record else None

	async def list_applications(self, clan_id: UUID, *, status: str = "pending") -> list[models.ClanApplication]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"SELECT * FROM clan_applications WHERE clan_id=$1 AND status=$2 ORDER BY created_at ASC",
				clan_id,
				status,
			)
		return [models.ClanApplication.model_validate(dict(record)) for record in records]

	async def resolve_application(
		self,
		application_id: UUID,
		*,
		status: str,
		handled_by: UUID,
		default_role_id: UUID | None,
		now: datetime,
	) -> models.ClanApplication:
		"""Flip a pending application; on accept seat the applicant in the same transaction.

		Only one caller can win the ``status='pending'`` guard. A membership
		conflict rolls the status change back so the application stays pending.
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				record = await conn.fetchrow(
					"""
					UPDATE clan_applications SET status=$2, handled_by=$3, handled_at=$4
					WHERE id=$1 AND status='pending'
					RETURNING *
					""",
					application_id,
					status,
					handled_by,
					now,
				)
				if not record:
					raise NotFoundError("application_not_found")
				if status == "accepted":
					if default_role_id is None:
						raise NotFoundError("default_role_missing")
					try:
						await self._insert_member(
							conn,
							clan_id=record["clan_id"],
							user_id=record["user_id"],
							role_id=default_role_id,
						)
					except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
						raise ConflictError("already_in_clan") from exc
		return models.ClanApplication.model_validate(dict(record))

	# --- Invitations -------------------------------------------------------

	async def create_invitation(
		self,
		*,
		clan_id: UUID,
		invitee_id: UUID,
		inviter_id: UUID,
		expires_at: datetime,
		now: datetime,
	) -> models.ClanInvitation:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				# stale pending rows would otherwise hold the partial unique index
				await conn.execute(
					"""
					UPDATE clan_invitations SET status='expired'
					WHERE clan_id=$1 AND invitee_id=$2 AND status='pending' AND expires_at <= $3
					""",
					clan_id,
					invitee_id,
					now,
				)
				try:
					record = await conn.fetchrow(
						"""
						INSERT INTO clan_invitations (id, clan_id, invitee_id, inviter_id, status, expires_at)
						VALUES ($1, $2, $3, $4, 'pending', $5)
						RETURNING *
						""",
						uuid4(),
						clan_id,
						invitee_id,
						inviter_id,
						expires_at,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise _conflict(exc, "invitation_pending") from exc
		return models.ClanInvitation.model_validate(dict(record))

	async def get_invitation(self, invitation_id: UUID) -> models.ClanInvitation | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clan_invitations WHERE id=$1", invitation_id)
		return models.ClanInvitation.model_validate(dict(record)) if record else None

	async def list_clan_invitations(self, clan_id: UUID, *, now: datetime) -> list[models.ClanInvitation]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM clan_invitations
				WHERE clan_id=$1 AND status='pending' AND expires_at > $2
				ORDER BY created_at DESC
				""",
				clan_id,
				now,
			)
		return [models.ClanInvitation.model_validate(dict(record)) for record in records]

	async def list_user_invitations(self, invitee_id: UUID, *, now: datetime) -> list[models.ClanInvitation]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM clan_invitations
				WHERE invitee_id=$1 AND status='pending' AND expires_at > $2
				ORDER BY created_at DESC
				""",
				invitee_id,
				now,
			)
		return [models.ClanInvitation.model_validate(dict(record)) for record in records]

	async def mark_invitation_expired(self, invitation_id: UUID) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"UPDATE clan_invitations SET status='expired' WHERE id=$1 AND status='pending'",
				invitation_id,
			)

	async def accept_invitation(
		self,
		invitation_id: UUID,
		*,
		role_id: UUID,
		now: datetime,
	) -> models.ClanInvitation:
		"""Consume an active invitation and seat the invitee atomically."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				record = await conn.fetchrow(
					"""
					DELETE FROM clan_invitations
					WHERE id=$1 AND status='pending' AND expires_at > $2
					RETURNING *
					""",
					invitation_id,
					now,
				)
				if not record:
					raise NotFoundError("invitation_not_found")
				try:
					await self._insert_member(
						conn,
						clan_id=record["clan_id"],
						user_id=record["invitee_id"],
						role_id=role_id,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("already_in_clan") from exc
		return models.ClanInvitation.model_validate({**dict(record), "status": "accepted"})

	async def delete_invitation(self, invitation_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			deleted = await conn.fetchval("DELETE FROM clan_invitations WHERE id=$1 RETURNING id", invitation_id)
		return deleted is not None

	async def expire_invitations(self, *, now: datetime) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"UPDATE clan_invitations SET status='expired' WHERE status='pending' AND expires_at <= $1",
				now,
			)
		return int(status.split()[-1])

	# --- Warnings ----------------------------------------------------------

	async def create_warning(self, *, clan_id: UUID, actor_id: UUID, target_id: UUID, reason: str) -> models.ClanWarning:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO clan_warnings (id, clan_id, actor_id, target_id, reason)
				VALUES ($1, $2, $3, $4, $5)
				RETURNING *
				""",
				uuid4(),
				clan_id,
				actor_id,
				target_id,
				reason,
			)
		return models.ClanWarning.model_validate(dict(record))

	async def get_warning(self, warning_id: UUID) -> models.ClanWarning | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clan_warnings WHERE id=$1", warning_id)
		return models.ClanWarning.model_validate(dict(record)) if record else None

	async def list_warnings(self, clan_id: UUID, *, target_id: UUID | None = None) -> list[models.ClanWarning]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM clan_warnings
				WHERE clan_id=$1 AND ($2::uuid IS NULL OR target_id=$2)
				ORDER BY created_at DESC
				""",
				clan_id,
				target_id,
			)
		return [models.ClanWarning.model_validate(dict(record)) for record in records]

	async def delete_warning(self, warning_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			deleted = await conn.fetchval("DELETE FROM clan_warnings WHERE id=$1 RETURNING id", warning_id)
		return deleted is not None

	# --- Reviews -----------------------------------------------------------

	async def create_review(self, *, clan_id: UUID, author_id: UUID, rating: int, text: str) -> models.ClanReview:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO clan_reviews (id, clan_id, author_id, rating, text)
					VALUES ($1, $2, $3, $4, $5)
					RETURNING *
					""",
					uuid4(),
					clan_id,
					author_id,
					rating,
					text,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise _conflict(exc, "review_exists") from exc
		return models.ClanReview.model_validate(dict(record))

	async def list_reviews(self, clan_id: UUID) -> list[models.ClanReview]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"SELECT * FROM clan_reviews WHERE clan_id=$1 ORDER BY created_at DESC",
				clan_id,
			)
		return [models.ClanReview.model_validate(dict(record)) for record in records]

	# --- Clan chat ---------------------------------------------------------

	async def create_message(
		self,
		*,
		clan_id: UUID,
		author_id: UUID,
		channel: str,
		content: str,
		parent_id: UUID | None,
	) -> models.ClanMessage:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO clan_messages (id, clan_id, author_id, channel, content, parent_id)
				VALUES ($1, $2, $3, $4, $5, $6)
				RETURNING *
				""",
				uuid4(),
				clan_id,
				author_id,
				channel,
				content,
				parent_id,
			)
		return models.ClanMessage.model_validate(dict(record))

	async def get_message(self, message_id: UUID) -> models.ClanMessage | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM clan_messages WHERE id=$1", message_id)
		return models.ClanMessage.model_validate(dict(record)) if record else None

	async def list_messages(self, clan_id: UUID, *, channels: Iterable[str], limit: int) -> list[models.ClanMessage]:
		"""Newest ``limit`` messages per the given channels, returned oldest first."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM (
					SELECT * FROM clan_messages
					WHERE clan_id=$1 AND channel = ANY($2::text[])
					ORDER BY created_at DESC
					LIMIT $3
				) recent
				ORDER BY created_at ASC
				""",
				clan_id,
				list(channels),
				limit,
			)
		return [models.ClanMessage.model_validate(dict(record)) for record in records]

	async def update_message(
		self,
		message_id: UUID,
		*,
		content: str,
		edited_at: Optional[datetime] = None,
		deleted_at: Optional[datetime] = None,
	) -> models.ClanMessage:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE clan_messages
				SET content=$2, edited_at=COALESCE($3, edited_at), deleted_at=COALESCE($4, deleted_at)
				WHERE id=$1
				RETURNING *
				""",
				message_id,
				content,
				edited_at,
				deleted_at,
			)
		if not record:
			raise NotFoundError("message_not_found")
		return models.ClanMessage.model_validate(dict(record))

	# --- Audit -------------------------------------------------------------

	async def record_audit_event(
		self,
		*,
		clan_id: UUID,
		user_id: UUID,
		action: str,
		details: dict[str, Any] | None = None,
	) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"INSERT INTO clan_audit_log (clan_id, user_id, action, details) VALUES ($1, $2, $3, $4)",
				clan_id,
				user_id,
				action,
				details or {},
			)
