"""Direct message routes: conversation previews, history, sending and read markers."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from clanhall.clans.api._errors import to_http_error
from clanhall.domain.messages import schemas
from clanhall.domain.messages import sockets as dm_sockets
from clanhall.domain.messages.service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, DirectMessageService
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/api/v1/messages", tags=["messages"])
_service = DirectMessageService()


@router.get("", response_model=List[schemas.ConversationPreviewResponse])
async def list_conversations_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[schemas.ConversationPreviewResponse]:
	try:
		return await _service.previews(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/{peer_id}", response_model=schemas.ConversationResponse)
async def get_conversation_endpoint(
	peer_id: UUID,
	limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
	before: Optional[datetime] = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.ConversationResponse:
	try:
		return await _service.conversation(auth_user, peer_id, limit=limit, before=before)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/{peer_id}", response_model=schemas.DirectMessageResponse, status_code=201)
async def send_message_endpoint(
	peer_id: UUID,
	payload: schemas.DirectMessageSendRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.DirectMessageResponse:
	try:
		message = await _service.send(
			auth_user,
			schemas.DirectMessageCreate(recipient_id=peer_id, content=payload.content, parent_id=payload.parent_id),
		)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	await dm_sockets.publish_message("dm:message", message)
	return message


@router.post("/{peer_id}/read", response_model=schemas.MarkReadResponse)
async def mark_read_endpoint(
	peer_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> schemas.MarkReadResponse:
	try:
		return await _service.mark_read(auth_user, peer_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


__all__ = ["router"]
