"""Membership routes: join, leave, kick, role changes and mutes."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.membership_service import MembershipService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans:members"])
_service = MembershipService()


@router.get("/clans/{clan_id}/members", response_model=List[dto.MemberResponse])
async def list_members_endpoint(
	clan_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.MemberResponse]:
	try:
		return await _service.list_members(clan_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/clans/{clan_id}/members", response_model=dto.MemberResponse, status_code=201)
async def join_clan_endpoint(
	clan_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberResponse:
	try:
		return await _service.join_open(auth_user, clan_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/clans/{clan_id}/members/me",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def leave_clan_endpoint(
	clan_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.leave(auth_user, clan_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/clans/{clan_id}/members/{user_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def kick_member_endpoint(
	clan_id: UUID,
	user_id: UUID,
	reason: str | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.kick(auth_user, clan_id, user_id, reason=reason)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/clans/{clan_id}/members/{user_id}", response_model=dto.MemberResponse)
async def change_role_endpoint(
	clan_id: UUID,
	user_id: UUID,
	payload: dto.MemberRoleUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberResponse:
	try:
		return await _service.change_role(auth_user, clan_id, user_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/clans/{clan_id}/members/{user_id}/mute", response_model=dto.MemberResponse)
async def mute_member_endpoint(
	clan_id: UUID,
	user_id: UUID,
	payload: dto.MuteRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberResponse:
	try:
		return await _service.mute(auth_user, clan_id, user_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/clans/{clan_id}/members/{user_id}/unmute", response_model=dto.MemberResponse)
async def unmute_member_endpoint(
	clan_id: UUID,
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberResponse:
	try:
		return await _service.unmute(auth_user, clan_id, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
