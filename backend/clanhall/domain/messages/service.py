"""Direct message rules: sender-only edits, same-conversation replies, read markers."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from clanhall.clans.domain.context import user_uuid, utcnow
from clanhall.clans.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from clanhall.domain.messages import models, schemas
from clanhall.domain.messages.repo import MessagesRepository
from clanhall.infra.auth import AuthenticatedUser
from clanhall.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

DELETED_PLACEHOLDER = "[deleted]"
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def to_response(message: models.DirectMessage) -> schemas.DirectMessageResponse:
	return schemas.DirectMessageResponse(**message.model_dump())


class DirectMessageService:
	def __init__(self, *, repository: MessagesRepository | None = None) -> None:
		self.repo = repository or MessagesRepository()

	async def send(self, user: AuthenticatedUser, payload: schemas.DirectMessageCreate) -> schemas.DirectMessageResponse:
		sender_id = user_uuid(user)
		if payload.recipient_id == sender_id:
			raise ValidationError("cannot_message_self", fields=["recipient_id"])
		if payload.parent_id is not None:
			parent = await self.repo.get_message(payload.parent_id)
			if parent is None or not (parent.involves(sender_id) and parent.involves(payload.recipient_id)):
				raise ValidationError("invalid_parent", fields=["parent_id"])
		message = await self.repo.create_message(
			sender_id=sender_id,
			recipient_id=payload.recipient_id,
			content=payload.content,
			parent_id=payload.parent_id,
		)
		obs_metrics.message_sent("direct")
		_LOG.info("messages.direct.sent", extra={"message_id": str(message.id)})
		return to_response(message)

	async def _own_message(self, user: AuthenticatedUser, message_id: UUID) -> models.DirectMessage:
		message = await self.repo.get_message(message_id)
		if message is None or message.deleted_at is not None:
			raise NotFoundError("message_not_found")
		if message.sender_id != user_uuid(user):
			raise ForbiddenError("not_message_author")
		return message

	async def edit(self, user: AuthenticatedUser, payload: schemas.DirectMessageEdit) -> schemas.DirectMessageResponse:
		message = await self._own_message(user, payload.message_id)
		updated = await self.repo.update_message(message.id, content=payload.content, edited_at=utcnow())
		return to_response(updated)

	async def delete(self, user: AuthenticatedUser, message_id: UUID) -> schemas.DirectMessageResponse:
		message = await self._own_message(user, message_id)
		updated = await self.repo.update_message(message.id, content=DELETED_PLACEHOLDER, deleted_at=utcnow())
		return to_response(updated)

	async def conversation(
		self,
		user: AuthenticatedUser,
		peer_id: UUID,
		*,
		limit: int = DEFAULT_PAGE_SIZE,
		before: Optional[datetime] = None,
	) -> schemas.ConversationResponse:
		limit = max(1, min(limit, MAX_PAGE_SIZE))
		messages = await self.repo.list_conversation(user_uuid(user), peer_id, limit=limit, before=before)
		return schemas.ConversationResponse(peer_id=peer_id, items=[to_response(message) for message in messages])

	async def previews(self, user: AuthenticatedUser) -> list[schemas.ConversationPreviewResponse]:
		previews = await self.repo.list_previews(user_uuid(user))
		return [
			schemas.ConversationPreviewResponse(
				peer_id=preview.peer_id,
				last_message=to_response(preview.last_message),
				unread_count=preview.unread_count,
			)
			for preview in previews
		]

	async def mark_read(self, user: AuthenticatedUser, peer_id: UUID) -> schemas.MarkReadResponse:
		updated = await self.repo.mark_read(recipient_id=user_uuid(user), sender_id=peer_id, now=utcnow())
		return schemas.MarkReadResponse(updated=updated)
