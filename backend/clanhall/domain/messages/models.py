"""Domain models for direct messages."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class DirectMessage(BaseModel):
	id: UUID
	sender_id: UUID
	recipient_id: UUID
	content: str
	parent_id: Optional[UUID] = None
	created_at: datetime
	edited_at: Optional[datetime] = None
	deleted_at: Optional[datetime] = None
	read_at: Optional[datetime] = None

	model_config = ConfigDict(from_attributes=True)

	def involves(self, user_id: UUID) -> bool:
		return user_id in (self.sender_id, self.recipient_id)

	def peer_of(self, user_id: UUID) -> UUID:
		return self.recipient_id if self.sender_id == user_id else self.sender_id


class ConversationPreview(BaseModel):
	peer_id: UUID
	last_message: DirectMessage
	unread_count: int = 0
