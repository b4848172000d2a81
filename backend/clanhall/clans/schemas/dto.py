"""Pydantic schemas for the clans API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clanhall.clans.domain import models

_HEX_COLOR = "^#[0-9a-fA-F]{6}$"
JoinType = Literal["open", "application", "closed"]
APPEARANCE_FIELDS = ("card_color", "text_color", "card_icon_url", "card_image_url")


class ClanCreateRequest(BaseModel):
	name: str = Field(..., min_length=1, max_length=20)
	tag: str = Field(..., min_length=1, max_length=50, pattern="^[a-zA-Z0-9_]+$")
	description: str = Field(default="", max_length=500)
	join_type: JoinType = "open"
	card_icon_url: Optional[str] = Field(default=None, max_length=2048)
	card_image_url: Optional[str] = Field(default=None, max_length=2048)

	model_config = ConfigDict(extra="forbid")


class ClanDetailsUpdateRequest(BaseModel):
	description: Optional[str] = Field(default=None, max_length=500)
	join_type: Optional[JoinType] = None
	card_color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
	text_color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
	card_icon_url: Optional[str] = Field(default=None, max_length=2048)
	card_image_url: Optional[str] = Field(default=None, max_length=2048)

	model_config = ConfigDict(extra="forbid")


class ClanSettingsUpdateRequest(BaseModel):
	application_template: Optional[List[models.ApplicationField]] = Field(default=None, max_length=20)
	join_type: Optional[JoinType] = None

	model_config = ConfigDict(extra="forbid")

	@field_validator("application_template")
	@classmethod
	def _unique_labels(cls, value: Optional[List[models.ApplicationField]]) -> Optional[List[models.ApplicationField]]:
		if value is None:
			return value
		labels = [field.label for field in value]
		if len(set(labels)) != len(labels):
			raise ValueError("application field labels must be unique")
		return value


class ClanResponse(BaseModel):
	id: UUID
	name: str
	tag: str
	description: str
	join_type: JoinType
	owner_id: UUID
	application_template: List[models.ApplicationField]
	card_color: Optional[str] = None
	text_color: Optional[str] = None
	card_icon_url: Optional[str] = None
	card_image_url: Optional[str] = None
	created_at: datetime
	updated_at: datetime
	member_count: Optional[int] = None


class ClanListResponse(BaseModel):
	items: List[ClanResponse]
	total: int
	page: int
	limit: int


class RoleCreateRequest(BaseModel):
	name: str = Field(..., min_length=1, max_length=15)
	color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
	power_level: int
	permissions: models.RolePermissions = Field(default_factory=models.RolePermissions)

	model_config = ConfigDict(extra="forbid")


class RoleUpdateRequest(BaseModel):
	"""Partial update; only fields present in the payload are considered."""

	name: Optional[str] = Field(default=None, min_length=1, max_length=15)
	color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)
	power_level: Optional[int] = None
	permissions: Optional[models.RolePermissions] = None

	model_config = ConfigDict(extra="forbid")


class RoleResponse(BaseModel):
	id: UUID
	clan_id: UUID
	name: str
	color: Optional[str] = None
	power_level: int
	permissions: Dict[str, Any]
	is_system_role: bool
	created_at: datetime


class RoleDeleteResponse(BaseModel):
	deleted: bool = True
	migrated_members: int = 0


class MemberResponse(BaseModel):
	id: UUID
	clan_id: UUID
	user_id: UUID
	role_id: UUID
	role_name: str
	power_level: int
	joined_at: datetime
	muted_until: Optional[datetime] = None
	mute_reason: Optional[str] = None


class ClanDetailResponse(BaseModel):
	clan: ClanResponse
	roles: List[RoleResponse]
	members: List[MemberResponse]
	viewer_role_id: Optional[UUID] = None
	viewer_has_history: bool = False


class MemberRoleUpdateRequest(BaseModel):
	role_id: UUID


class MuteRequest(BaseModel):
	reason: str = Field(..., min_length=1, max_length=255)
	duration_minutes: int = Field(default=60, ge=1, le=525600)


class ApplicationCreateRequest(BaseModel):
	answers: Dict[str, str] = Field(default_factory=dict)

	@field_validator("answers")
	@classmethod
	def _bounded(cls, value: Dict[str, str]) -> Dict[str, str]:
		if len(value) > 20:
			raise ValueError("too many answers")
		for key, answer in value.items():
			if len(key) > 100 or len(answer) > 2000:
				raise ValueError("answer too long")
		return value


class ApplicationHandleRequest(BaseModel):
	status: Literal["accepted", "rejected"]


class ApplicationResponse(BaseModel):
	id: UUID
	clan_id: UUID
	user_id: UUID
	answers: Dict[str, str]
	status: str
	handled_by: Optional[UUID] = None
	handled_at: Optional[datetime] = None
	created_at: datetime


class InvitationCreateRequest(BaseModel):
	user_id: UUID


class InvitationResponse(BaseModel):
	id: UUID
	clan_id: UUID
	invitee_id: UUID
	inviter_id: UUID
	status: str
	expires_at: datetime
	created_at: datetime


class WarningCreateRequest(BaseModel):
	reason: str = Field(..., min_length=1, max_length=255)


class WarningResponse(BaseModel):
	id: UUID
	clan_id: UUID
	actor_id: UUID
	target_id: UUID
	reason: str
	created_at: datetime


class OwnershipTransferRequest(BaseModel):
	new_owner_id: UUID = Field(..., alias="newOwnerId")
	old_owner_new_role_id: UUID = Field(..., alias="oldOwnerNewRoleId")
	confirmation: str = Field(..., max_length=50)

	model_config = ConfigDict(populate_by_name=True)


class ReviewCreateRequest(BaseModel):
	rating: int = Field(..., ge=1, le=5)
	text: str = Field(default="", max_length=1000)


class ReviewResponse(BaseModel):
	id: UUID
	clan_id: UUID
	author_id: UUID
	rating: int
	text: str
	created_at: datetime


class ClanMessageCreate(BaseModel):
	clan_id: UUID
	content: str = Field(..., min_length=1, max_length=2000)
	channel: Literal["general", "admin"] = "general"
	parent_id: Optional[UUID] = None


class ClanMessageEdit(BaseModel):
	message_id: UUID
	content: str = Field(..., min_length=1, max_length=2000)


class ClanMessageResponse(BaseModel):
	id: UUID
	clan_id: UUID
	author_id: UUID
	channel: str
	content: str
	parent_id: Optional[UUID] = None
	created_at: datetime
	edited_at: Optional[datetime] = None
	deleted_at: Optional[datetime] = None


class CommandResult(BaseModel):
	command: str
	ok: bool = True
	detail: str
	target_user_id: Optional[UUID] = None


def clan_response(clan: models.Clan, *, member_count: int | None = None) -> ClanResponse:
	return ClanResponse(**clan.model_dump(), member_count=member_count)


def role_response(role: models.ClanRole) -> RoleResponse:
	data = role.model_dump(exclude={"permissions"})
	return RoleResponse(**data, permissions=role.permissions.to_storage())


def member_response(member: models.ClanMember) -> MemberResponse:
	return MemberResponse(
		**member.model_dump(exclude={"role"}),
		role_name=member.role.name,
		power_level=member.role.power_level,
	)
