"""Clan chat history over HTTP; live traffic goes through the /clans namespace."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.chat_service import ClanChatService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans:chat"])
_service = ClanChatService()


@router.get("/clans/{clan_id}/messages", response_model=List[dto.ClanMessageResponse])
async def clan_history_endpoint(
	clan_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.ClanMessageResponse]:
	try:
		return await _service.history(auth_user, clan_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
