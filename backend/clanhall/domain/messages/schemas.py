"""Pydantic schemas for direct messages."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DirectMessageCreate(BaseModel):
	recipient_id: UUID
	content: str = Field(..., min_length=1, max_length=2000)
	parent_id: Optional[UUID] = None


class DirectMessageSendRequest(BaseModel):
	content: str = Field(..., min_length=1, max_length=2000)
	parent_id: Optional[UUID] = None


class DirectMessageEdit(BaseModel):
	message_id: UUID
	content: str = Field(..., min_length=1, max_length=2000)


class DirectMessageResponse(BaseModel):
	id: UUID
	sender_id: UUID
	recipient_id: UUID
	content: str
	parent_id: Optional[UUID] = None
	created_at: datetime
	edited_at: Optional[datetime] = None
	deleted_at: Optional[datetime] = None
	read_at: Optional[datetime] = None


class ConversationPreviewResponse(BaseModel):
	peer_id: UUID
	last_message: DirectMessageResponse
	unread_count: int


class ConversationResponse(BaseModel):
	peer_id: UUID
	items: List[DirectMessageResponse]


class MarkReadResponse(BaseModel):
	updated: int
