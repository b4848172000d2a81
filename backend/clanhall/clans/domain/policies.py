"""Authorization policies for clan operations.

Every check here is a pure function of the roles, memberships and clan it is
handed; services load state and call in before mutating anything.
"""

from __future__ import annotations

from typing import Iterable, Literal, Mapping
from uuid import UUID

from clanhall.clans.domain import models
from clanhall.clans.domain.exceptions import ConflictError, ForbiddenError, ValidationError

OWNER_POWER = 999
DEFAULT_POWER = 10
CUSTOM_POWER_CEILING = 800
MIN_POWER = 1

OWNER_ROLE_NAME = "Owner"
DEFAULT_ROLE_NAME = "Default"

SYSTEM_ROLE_EDITABLE = frozenset({"name", "color"})
SYSTEM_ROLE_LOCKED = ("power_level", "permissions")

ActionKind = Literal["kick", "mute", "warn", "promote", "demote"]

_THRESHOLDS: Mapping[str, str] = {
	"kick": "max_kick_power",
	"mute": "max_mute_power",
	"warn": "max_warn_power",
	"promote": "max_promote_power",
	"demote": "max_demote_power",
}


def is_owner(clan: models.Clan, user_id: UUID) -> bool:
	return clan.owner_id == user_id


def has_toggle(clan: models.Clan, member: models.ClanMember | None, toggle: str) -> bool:
	"""Owner always passes; everyone else needs the toggle on their role."""
	if member is None or member.clan_id != clan.id:
		return False
	if is_owner(clan, member.user_id):
		return True
	return bool(getattr(member.role.permissions.clan_permissions, toggle))


def require_member(member: models.ClanMember | None) -> models.ClanMember:
	if member is None:
		raise ForbiddenError("membership_required")
	return member


def require_toggle(clan: models.Clan, member: models.ClanMember | None, toggle: str) -> models.ClanMember:
	actor = require_member(member)
	if not has_toggle(clan, actor, toggle):
		raise ForbiddenError("permission_denied", context={"permission": toggle})
	return actor


def require_owner(clan: models.Clan, user_id: UUID) -> None:
	if not is_owner(clan, user_id):
		raise ForbiddenError("owner_only")


def threshold(role: models.ClanRole, action: ActionKind) -> int:
	return int(getattr(role.permissions.member_permissions, _THRESHOLDS[action]))


def outranks(actor_role: models.ClanRole, target_role: models.ClanRole) -> bool:
	return actor_role.power_level > target_role.power_level


def can_act_on(actor_role: models.ClanRole, target_role: models.ClanRole, action: ActionKind) -> bool:
	"""Actor must outrank the target and hold a threshold above the target's power."""
	if not outranks(actor_role, target_role):
		return False
	return threshold(actor_role, action) > target_role.power_level


def ensure_can_act_on(
	clan: models.Clan,
	actor: models.ClanMember | None,
	target: models.ClanMember | None,
	action: ActionKind,
) -> models.ClanMember:
	actor = require_member(actor)
	if target is None or target.clan_id != clan.id:
		raise ForbiddenError("target_not_member")
	if target.user_id == actor.user_id:
		raise ForbiddenError("cannot_target_self")
	if is_owner(clan, target.user_id):
		raise ForbiddenError("cannot_target_owner")
	if not can_act_on(actor.role, target.role, action):
		raise ForbiddenError("insufficient_power", context={"action": action})
	return actor


def can_view_warnings(clan: models.Clan, member: models.ClanMember | None) -> bool:
	if member is None or member.clan_id != clan.id:
		return False
	if is_owner(clan, member.user_id):
		return True
	return member.role.permissions.member_permissions.max_warn_power > 0


def ensure_can_view_warnings(clan: models.Clan, member: models.ClanMember | None) -> models.ClanMember:
	actor = require_member(member)
	if not can_view_warnings(clan, actor):
		raise ForbiddenError("moderation_access_required")
	return actor


# --- Role management -------------------------------------------------------


def ensure_custom_power(power_level: int, actor_role: models.ClanRole) -> None:
	if not MIN_POWER <= power_level < CUSTOM_POWER_CEILING:
		raise ValidationError(
			"power_level_out_of_range",
			fields=["power_level"],
			context={"min": MIN_POWER, "max_exclusive": CUSTOM_POWER_CEILING},
		)
	if power_level >= actor_role.power_level:
		raise ForbiddenError("power_level_exceeds_actor")


def ensure_system_role_patch(role: models.ClanRole, provided: Iterable[str]) -> None:
	"""System roles only accept name/color; locked fields are rejected, never ignored."""
	if not role.is_system_role:
		return
	offending = sorted(field for field in provided if field not in SYSTEM_ROLE_EDITABLE)
	if offending:
		raise ValidationError("system_role_fields_immutable", fields=offending)


def ensure_role_deletable(role: models.ClanRole, member_count: int) -> None:
	if role.is_system_role:
		raise ForbiddenError("system_role_protected")
	if member_count > 0:
		raise ConflictError("role_in_use", context={"member_count": member_count, "remediation": "migrate_to"})


def ensure_migration_target(deleted: models.ClanRole, target: models.ClanRole | None) -> models.ClanRole:
	if target is None or target.clan_id != deleted.clan_id:
		raise ValidationError("migration_role_invalid", fields=["migrate_to"])
	if target.id == deleted.id or target.power_level >= OWNER_POWER:
		raise ValidationError("migration_role_invalid", fields=["migrate_to"])
	return target


def ensure_role_change(
	clan: models.Clan,
	actor: models.ClanMember | None,
	target: models.ClanMember | None,
	new_role: models.ClanRole | None,
) -> ActionKind:
	"""Validate a member role change and return whether it promotes or demotes."""
	actor = require_member(actor)
	if new_role is None or new_role.clan_id != clan.id:
		raise ValidationError("role_not_in_clan", fields=["role_id"])
	if new_role.power_level >= OWNER_POWER:
		raise ForbiddenError("owner_role_not_assignable")
	if target is not None and target.role_id == new_role.id:
		raise ValidationError("role_unchanged", fields=["role_id"])
	if new_role.power_level >= actor.power_level:
		raise ForbiddenError("role_exceeds_actor")
	current = target.power_level if target is not None else 0
	action: ActionKind = "promote" if new_role.power_level > current else "demote"
	ensure_can_act_on(clan, actor, target, action)
	return action


# --- Applications ----------------------------------------------------------


def ensure_answers_match_template(
	template: list[models.ApplicationField],
	answers: Mapping[str, str],
) -> None:
	if not template:
		return
	labels = [field.label for field in template]
	missing = [label for label in labels if not str(answers.get(label, "")).strip()]
	unknown = sorted(key for key in answers if key not in labels)
	if missing or unknown:
		raise ValidationError(
			"application_answers_invalid",
			fields=[*missing, *unknown],
			context={"missing": missing, "unknown": unknown},
		)


# --- Ownership transfer ----------------------------------------------------


def ensure_transfer_allowed(
	*,
	clan: models.Clan,
	caller_id: UUID,
	new_owner: models.ClanMember | None,
	old_owner_new_role: models.ClanRole | None,
	confirmation: str,
) -> None:
	"""All preconditions of an ownership transfer; raising leaves nothing mutated."""
	require_owner(clan, caller_id)
	if new_owner is None or new_owner.clan_id != clan.id:
		raise ValidationError("new_owner_not_member", fields=["newOwnerId"])
	if new_owner.user_id == caller_id:
		raise ValidationError("new_owner_is_current_owner", fields=["newOwnerId"])
	if old_owner_new_role is None or old_owner_new_role.clan_id != clan.id:
		raise ValidationError("role_not_in_clan", fields=["oldOwnerNewRoleId"])
	if old_owner_new_role.power_level >= OWNER_POWER:
		raise ValidationError("role_too_powerful", fields=["oldOwnerNewRoleId"])
	if confirmation != clan.tag:
		raise ValidationError("confirmation_mismatch", fields=["confirmation"])
