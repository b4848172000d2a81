"""Domain models for clans, roles and memberships."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

JoinType = Literal["open", "application", "closed"]
ApplicationStatus = Literal["pending", "accepted", "rejected"]
InvitationStatus = Literal["pending", "accepted", "declined", "expired"]
ChatChannel = Literal["general", "admin"]

CLAN_TOGGLES = (
	"can_edit_details",
	"can_edit_appearance",
	"can_edit_roles",
	"can_edit_application_form",
	"can_accept_members",
	"can_invite_members",
	"can_use_clan_tags",
	"can_access_admin_chat",
)

MEMBER_THRESHOLDS = (
	"max_kick_power",
	"max_mute_power",
	"max_promote_power",
	"max_demote_power",
	"max_warn_power",
)


class ClanPermissions(BaseModel):
	"""Boolean toggles gating non-hierarchical clan actions."""

	can_edit_details: bool = Field(default=False, alias="canEditDetails")
	can_edit_appearance: bool = Field(default=False, alias="canEditAppearance")
	can_edit_roles: bool = Field(default=False, alias="canEditRoles")
	can_edit_application_form: bool = Field(default=False, alias="canEditApplicationForm")
	can_accept_members: bool = Field(default=False, alias="canAcceptMembers")
	can_invite_members: bool = Field(default=False, alias="canInviteMembers")
	can_use_clan_tags: bool = Field(default=False, alias="canUseClanTags")
	can_access_admin_chat: bool = Field(default=False, alias="canAccessAdminChat")

	model_config = ConfigDict(populate_by_name=True, extra="forbid")


class MemberPermissions(BaseModel):
	"""Power thresholds; an action applies only to targets strictly below the threshold."""

	max_kick_power: int = Field(default=0, ge=0, le=999, alias="maxKickPower")
	max_mute_power: int = Field(default=0, ge=0, le=999, alias="maxMutePower")
	max_promote_power: int = Field(default=0, ge=0, le=999, alias="maxPromotePower")
	max_demote_power: int = Field(default=0, ge=0, le=999, alias="maxDemotePower")
	max_warn_power: int = Field(default=0, ge=0, le=999, alias="maxWarnPower")

	model_config = ConfigDict(populate_by_name=True, extra="forbid")


class RolePermissions(BaseModel):
	"""Fixed-shape permission bundle stored as JSONB (camelCase keys)."""

	clan_permissions: ClanPermissions = Field(default_factory=ClanPermissions, alias="clanPermissions")
	member_permissions: MemberPermissions = Field(default_factory=MemberPermissions, alias="memberPermissions")

	model_config = ConfigDict(populate_by_name=True, extra="forbid")

	@classmethod
	def everything(cls) -> "RolePermissions":
		return cls(
			clan_permissions=ClanPermissions(**{name: True for name in CLAN_TOGGLES}),
			member_permissions=MemberPermissions(**{name: 999 for name in MEMBER_THRESHOLDS}),
		)

	def to_storage(self) -> dict:
		return self.model_dump(by_alias=True)


class ApplicationField(BaseModel):
	label: str = Field(..., min_length=1, max_length=100)
	type: Literal["text", "textarea"] = "text"

	model_config = ConfigDict(extra="forbid")


class Clan(BaseModel):
	"""Represents a clan."""

	id: UUID
	name: str
	tag: str
	description: str = ""
	join_type: JoinType
	owner_id: UUID
	application_template: list[ApplicationField] = Field(default_factory=list)
	card_color: Optional[str] = None
	text_color: Optional[str] = None
	card_icon_url: Optional[str] = None
	card_image_url: Optional[str] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class ClanRole(BaseModel):
	"""Represents a role scoped to one clan."""

	id: UUID
	clan_id: UUID
	name: str
	color: Optional[str] = None
	power_level: int
	permissions: RolePermissions = Field(default_factory=RolePermissions)
	is_system_role: bool = False
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class ClanMember(BaseModel):
	"""Represents a membership row together with its role."""

	id: UUID
	clan_id: UUID
	user_id: UUID
	role_id: UUID
	role: ClanRole
	joined_at: datetime
	muted_until: Optional[datetime] = None
	mute_reason: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)

	@property
	def power_level(self) -> int:
		return self.role.power_level

	def is_muted(self, now: datetime) -> bool:
		return self.muted_until is not None and self.muted_until > now


class ClanApplication(BaseModel):
	id: UUID
	clan_id: UUID
	user_id: UUID
	answers: dict[str, str] = Field(default_factory=dict)
	status: ApplicationStatus
	handled_by: Optional[UUID] = None
	handled_at: Optional[datetime] = None
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class ClanInvitation(BaseModel):
	id: UUID
	clan_id: UUID
	invitee_id: UUID
	inviter_id: UUID
	status: InvitationStatus
	expires_at: datetime
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)

	def is_active(self, now: datetime) -> bool:
		return self.status == "pending" and self.expires_at > now


class ClanWarning(BaseModel):
	id: UUID
	clan_id: UUID
	actor_id: UUID
	target_id: UUID
	reason: str
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class MemberHistory(BaseModel):
	clan_id: UUID
	user_id: UUID
	joined_at: datetime
	left_at: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)


class ClanReview(BaseModel):
	id: UUID
	clan_id: UUID
	author_id: UUID
	rating: int
	text: str = ""
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class ClanMessage(BaseModel):
	id: UUID
	clan_id: UUID
	author_id: UUID
	channel: ChatChannel
	content: str
	parent_id: Optional[UUID] = None
	created_at: datetime
	edited_at: Optional[datetime] = None
	deleted_at: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)


class ClanSummary(BaseModel):
	"""List projection with aggregate member count."""

	clan: Clan
	member_count: int
