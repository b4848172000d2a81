from __future__ import annotations

from datetime import datetime, timezone
from itertools import product
from uuid import uuid4

import pytest

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain import models, policies
from clanhall.clans.domain.exceptions import ConflictError, ForbiddenError, ValidationError

_NOW = datetime.now(timezone.utc)
_CLAN_ID = uuid4()
_OWNER_ID = uuid4()


def _clan(**overrides) -> models.Clan:
	data = dict(
		id=_CLAN_ID,
		name="Wolves",
		tag="wolves",
		join_type="open",
		owner_id=_OWNER_ID,
		created_at=_NOW,
		updated_at=_NOW,
	)
	data.update(overrides)
	return models.Clan(**data)


def _role(power: int, *, system: bool = False, **perms) -> models.ClanRole:
	return models.ClanRole(
		id=uuid4(),
		clan_id=_CLAN_ID,
		name=f"role-{power}",
		power_level=power,
		permissions=models.RolePermissions(
			clan_permissions=models.ClanPermissions(
				**{key: value for key, value in perms.items() if key in models.CLAN_TOGGLES}
			),
			member_permissions=models.MemberPermissions(
				**{key: value for key, value in perms.items() if key in models.MEMBER_THRESHOLDS}
			),
		),
		is_system_role=system,
		created_at=_NOW,
	)


def _member(role: models.ClanRole, user_id=None) -> models.ClanMember:
	return models.ClanMember(
		id=uuid4(),
		clan_id=role.clan_id,
		user_id=user_id or uuid4(),
		role_id=role.id,
		role=role,
		joined_at=_NOW,
	)


def test_can_act_on_requires_outranking_and_threshold():
	officer = _role(500, max_kick_power=100)
	assert policies.can_act_on(officer, _role(10), "kick")
	assert not policies.can_act_on(officer, _role(100), "kick")
	assert not policies.can_act_on(officer, _role(10), "mute")
	assert not policies.can_act_on(_role(50, max_kick_power=999), _role(50), "kick")
	assert not policies.can_act_on(_role(50, max_kick_power=999), _role(60), "kick")


def test_can_act_on_never_reaches_equal_or_higher_power():
	powers = [1, 10, 50, 100, 500, 799, 999]
	thresholds = [0, 10, 100, 999]
	for actor_power, target_power, limit in product(powers, powers, thresholds):
		actor = _role(actor_power, max_warn_power=limit)
		target = _role(target_power)
		if policies.can_act_on(actor, target, "warn"):
			assert actor_power > target_power
			assert limit > target_power


def test_ensure_can_act_on_rejects_self_owner_and_outsiders():
	clan = _clan()
	officer = _member(_role(500, max_kick_power=999))
	owner = _member(_role(999, system=True), user_id=_OWNER_ID)

	with pytest.raises(ForbiddenError) as self_exc:
		policies.ensure_can_act_on(clan, officer, officer, "kick")
	assert self_exc.value.detail == "cannot_target_self"

	with pytest.raises(ForbiddenError) as owner_exc:
		policies.ensure_can_act_on(clan, officer, owner, "kick")
	assert owner_exc.value.detail == "cannot_target_owner"

	with pytest.raises(ForbiddenError) as outsider_exc:
		policies.ensure_can_act_on(clan, None, officer, "kick")
	assert outsider_exc.value.detail == "membership_required"


def test_has_toggle_passes_owner_regardless_of_role():
	clan = _clan()
	owner = _member(_role(10), user_id=_OWNER_ID)
	plain = _member(_role(10))
	editor = _member(_role(20, can_edit_roles=True))

	assert policies.has_toggle(clan, owner, "can_edit_roles")
	assert not policies.has_toggle(clan, plain, "can_edit_roles")
	assert policies.has_toggle(clan, editor, "can_edit_roles")
	with pytest.raises(ForbiddenError) as exc:
		policies.require_toggle(clan, plain, "can_edit_roles")
	assert exc.value.context == {"permission": "can_edit_roles"}


@pytest.mark.parametrize("power", [0, -5, 800, 999])
def test_custom_power_out_of_range(power):
	with pytest.raises(ValidationError) as exc:
		policies.ensure_custom_power(power, _role(999))
	assert exc.value.detail == "power_level_out_of_range"
	assert exc.value.fields == ["power_level"]


def test_custom_power_must_stay_below_actor():
	policies.ensure_custom_power(799, _role(999))
	policies.ensure_custom_power(1, _role(2))
	with pytest.raises(ForbiddenError) as exc:
		policies.ensure_custom_power(500, _role(500))
	assert exc.value.detail == "power_level_exceeds_actor"


def test_system_role_patch_allows_only_name_and_color():
	role = _role(10, system=True)
	policies.ensure_system_role_patch(role, {"name", "color"})
	with pytest.raises(ValidationError) as exc:
		policies.ensure_system_role_patch(role, {"name", "power_level", "permissions"})
	assert exc.value.fields == ["permissions", "power_level"]


def test_role_deletion_guards():
	with pytest.raises(ForbiddenError):
		policies.ensure_role_deletable(_role(10, system=True), 0)
	with pytest.raises(ConflictError) as exc:
		policies.ensure_role_deletable(_role(50), 3)
	assert exc.value.context["member_count"] == 3
	policies.ensure_role_deletable(_role(50), 0)


def test_migration_target_must_be_distinct_non_owner_role():
	deleted = _role(50)
	assert policies.ensure_migration_target(deleted, _role(10)).power_level == 10
	for target in (None, deleted, _role(999, system=True)):
		with pytest.raises(ValidationError):
			policies.ensure_migration_target(deleted, target)
	foreign = _role(20).model_copy(update={"clan_id": uuid4()})
	with pytest.raises(ValidationError):
		policies.ensure_migration_target(deleted, foreign)


def test_role_change_classifies_and_checks_thresholds():
	clan = _clan()
	actor = _member(_role(500, max_promote_power=100, max_demote_power=0))
	target = _member(_role(10))
	higher = _role(50)
	assert policies.ensure_role_change(clan, actor, target, higher) == "promote"

	senior = _member(_role(60))
	with pytest.raises(ForbiddenError) as exc:
		policies.ensure_role_change(clan, actor, senior, _role(20))
	assert exc.value.detail == "insufficient_power"

	with pytest.raises(ForbiddenError) as owner_exc:
		policies.ensure_role_change(clan, actor, target, _role(999, system=True))
	assert owner_exc.value.detail == "owner_role_not_assignable"

	with pytest.raises(ForbiddenError) as above_exc:
		policies.ensure_role_change(clan, actor, target, _role(600))
	assert above_exc.value.detail == "role_exceeds_actor"


def test_answers_must_match_template_labels():
	template = [models.ApplicationField(label="age"), models.ApplicationField(label="why", type="textarea")]
	policies.ensure_answers_match_template(template, {"age": "17", "why": "fun"})
	policies.ensure_answers_match_template([], {"anything": "goes"})
	with pytest.raises(ValidationError) as exc:
		policies.ensure_answers_match_template(template, {"age": "17", "extra": "x"})
	assert exc.value.context["missing"] == ["why"]
	assert exc.value.context["unknown"] == ["extra"]


def test_transfer_preconditions():
	clan = _clan()
	officer_role = _role(500)
	new_owner = _member(officer_role)
	policies.ensure_transfer_allowed(
		clan=clan,
		caller_id=_OWNER_ID,
		new_owner=new_owner,
		old_owner_new_role=officer_role,
		confirmation="wolves",
	)
	cases = [
		(dict(caller_id=uuid4()), ForbiddenError, "owner_only"),
		(dict(new_owner=None), ValidationError, "new_owner_not_member"),
		(dict(old_owner_new_role=_role(999, system=True)), ValidationError, "role_too_powerful"),
		(dict(confirmation="Wolves!"), ValidationError, "confirmation_mismatch"),
	]
	for overrides, error, detail in cases:
		kwargs = dict(
			clan=clan,
			caller_id=_OWNER_ID,
			new_owner=new_owner,
			old_owner_new_role=officer_role,
			confirmation="wolves",
		)
		kwargs.update(overrides)
		with pytest.raises(error) as exc:
			policies.ensure_transfer_allowed(**kwargs)
		assert exc.value.detail == detail


def test_validation_error_translates_to_422_with_fields():
	http_error = to_http_error(ValidationError("confirmation_mismatch", fields=["confirmation"]))

	assert http_error.status_code == 422
	assert http_error.detail == {"code": "confirmation_mismatch", "fields": ["confirmation"]}
