"""Clan chat persistence and rules (channels, mutes, reply links, edit window)."""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from clanhall.clans.domain import models, policies, repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid, utcnow
from clanhall.clans.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from clanhall.clans.domain.membership_service import MembershipService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser
from clanhall.obs import metrics as obs_metrics
from clanhall.settings import settings

DELETED_PLACEHOLDER = "[deleted]"
ADMIN_CHANNEL = "admin"
GENERAL_CHANNEL = "general"


def message_response(message: models.ClanMessage) -> dto.ClanMessageResponse:
	return dto.ClanMessageResponse(**message.model_dump())


class ClanChatService(ClanContextMixin):
	"""Stores clan chat messages; delivery is left to the socket namespace."""

	def __init__(
		self,
		*,
		repository: repo_module.ClansRepository | None = None,
		membership: MembershipService | None = None,
	) -> None:
		self.repo = repository or repo_module.ClansRepository()
		self.membership = membership or MembershipService(repository=self.repo)

	@staticmethod
	def readable_channels(clan: models.Clan, member: models.ClanMember) -> list[str]:
		channels = [GENERAL_CHANNEL]
		if policies.has_toggle(clan, member, "can_access_admin_chat"):
			channels.append(ADMIN_CHANNEL)
		return channels

	async def membership_context(self, user: AuthenticatedUser, clan_id: UUID) -> tuple[models.Clan, models.ClanMember]:
		clan = await self._require_clan(clan_id)
		member = policies.require_member(await self._actor(clan, user))
		return clan, member

	async def history(self, user: AuthenticatedUser, clan_id: UUID) -> list[dto.ClanMessageResponse]:
		clan, member = await self.membership_context(user, clan_id)
		messages = await self.repo.list_messages(
			clan.id,
			channels=self.readable_channels(clan, member),
			limit=settings.clan_chat_history_limit,
		)
		return [message_response(message) for message in messages]

	async def prepare_post(
		self,
		user: AuthenticatedUser,
		payload: dto.ClanMessageCreate,
	) -> tuple[models.Clan, models.ClanMember, models.ClanMessage | None]:
		"""Checks shared by plain messages and moderation commands."""
		clan, member = await self.membership_context(user, payload.clan_id)
		if payload.channel not in self.readable_channels(clan, member):
			raise ForbiddenError("permission_denied", context={"permission": "can_access_admin_chat"})
		member = await self.membership.ensure_can_post(member)
		parent: models.ClanMessage | None = None
		if payload.parent_id is not None:
			parent = await self.repo.get_message(payload.parent_id)
			if parent is None or parent.clan_id != clan.id or parent.channel != payload.channel:
				raise ValidationError("invalid_parent", fields=["parent_id"])
		return clan, member, parent

	async def send(self, user: AuthenticatedUser, payload: dto.ClanMessageCreate) -> dto.ClanMessageResponse:
		clan, member, parent = await self.prepare_post(user, payload)
		message = await self.repo.create_message(
			clan_id=clan.id,
			author_id=member.user_id,
			channel=payload.channel,
			content=payload.content,
			parent_id=parent.id if parent else None,
		)
		obs_metrics.message_sent("clan")
		return message_response(message)

	async def _own_message(self, user: AuthenticatedUser, message_id: UUID) -> models.ClanMessage:
		message = await self.repo.get_message(message_id)
		if message is None or message.deleted_at is not None:
			raise NotFoundError("message_not_found")
		if message.author_id != user_uuid(user):
			raise ForbiddenError("not_message_author")
		return message

	async def edit(self, user: AuthenticatedUser, payload: dto.ClanMessageEdit) -> dto.ClanMessageResponse:
		message = await self._own_message(user, payload.message_id)
		now = utcnow()
		if now - message.created_at > timedelta(minutes=settings.clan_message_edit_window_minutes):
			raise ForbiddenError("edit_window_elapsed")
		updated = await self.repo.update_message(message.id, content=payload.content, edited_at=now)
		return message_response(updated)

	async def delete(self, user: AuthenticatedUser, message_id: UUID) -> dto.ClanMessageResponse:
		message = await self._own_message(user, message_id)
		updated = await self.repo.update_message(message.id, content=DELETED_PLACEHOLDER, deleted_at=utcnow())
		return message_response(updated)
