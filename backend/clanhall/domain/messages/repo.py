"""asyncpg persistence for direct messages."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from clanhall.domain.messages import models
from clanhall.infra.postgres import get_pool


class MessagesRepository:
	async def create_message(
		self,
		*,
		sender_id: UUID,
		recipient_id: UUID,
		content: str,
		parent_id: UUID | None,
	) -> models.DirectMessage:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO direct_messages (id, sender_id, recipient_id, content, parent_id)
				VALUES ($1, $2, $3, $4, $5)
				RETURNING *
				""",
				uuid4(),
				sender_id,
				recipient_id,
				content,
				parent_id,
			)
		return models.DirectMessage.model_validate(dict(record))

	async def get_message(self, message_id: UUID) -> models.DirectMessage | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM direct_messages WHERE id=$1", message_id)
		return models.DirectMessage.model_validate(dict(record)) if record else None

	async def list_conversation(
		self,
		user_id: UUID,
		peer_id: UUID,
		*,
		limit: int,
		before: Optional[datetime] = None,
	) -> list[models.DirectMessage]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT * FROM (
					SELECT * FROM direct_messages
					WHERE LEAST(sender_id, recipient_id) = LEAST($1::uuid, $2::uuid)
						AND GREATEST(sender_id, recipient_id) = GREATEST($1::uuid, $2::uuid)
						AND ($4::timestamptz IS NULL OR created_at < $4)
					ORDER BY created_at DESC
					LIMIT $3
				) recent
				ORDER BY created_at ASC
				""",
				user_id,
				peer_id,
				limit,
				before,
			)
		return [models.DirectMessage.model_validate(dict(record)) for record in records]

	async def list_previews(self, user_id: UUID) -> list[models.ConversationPreview]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			records = await conn.fetch(
				"""
				SELECT DISTINCT ON (peer_id) peer_id, m.*,
					(SELECT COUNT(*) FROM direct_messages u
						WHERE u.recipient_id = $1 AND u.sender_id = peer_id AND u.read_at IS NULL) AS unread_count
				FROM (
					SELECT CASE WHEN sender_id = $1 THEN recipient_id ELSE sender_id END AS peer_id, *
					FROM direct_messages
					WHERE sender_id = $1 OR recipient_id = $1
				) m
				ORDER BY peer_id, m.created_at DESC
				""",
				user_id,
			)
		previews = []
		for record in records:
			data = dict(record)
			peer_id = data.pop("peer_id")
			unread = data.pop("unread_count")
			previews.append(
				models.ConversationPreview(
					peer_id=peer_id,
					last_message=models.DirectMessage.model_validate(data),
					unread_count=int(unread or 0),
				)
			)
		previews.sort(key=lambda preview: preview.last_message.created_at, reverse=True)
		return previews

	async def mark_read(self, *, recipient_id: UUID, sender_id: UUID, now: datetime) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"""
				UPDATE direct_messages SET read_at=$3
				WHERE recipient_id=$1 AND sender_id=$2 AND read_at IS NULL
				""",
				recipient_id,
				sender_id,
				now,
			)
		return int(status.split()[-1])

	async def update_message(
		self,
		message_id: UUID,
		*,
		content: str,
		edited_at: Optional[datetime] = None,
		deleted_at: Optional[datetime] = None,
	) -> models.DirectMessage:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE direct_messages
				SET content=$2, edited_at=COALESCE($3, edited_at), deleted_at=COALESCE($4, deleted_at)
				WHERE id=$1
				RETURNING *
				""",
				message_id,
				content,
				edited_at,
				deleted_at,
			)
		return models.DirectMessage.model_validate(dict(record))
