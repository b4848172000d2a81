"""Invitation routes for inviters and invitees."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.invitations_service import InvitationsService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans:invitations"])
_service = InvitationsService()


@router.post("/clans/{clan_id}/invitations", response_model=dto.InvitationResponse, status_code=201)
async def create_invitation_endpoint(
	clan_id: UUID,
	payload: dto.InvitationCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.InvitationResponse:
	try:
		return await _service.create(auth_user, clan_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/clans/{clan_id}/invitations", response_model=List[dto.InvitationResponse])
async def list_clan_invitations_endpoint(
	clan_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.InvitationResponse]:
	try:
		return await _service.list_for_clan(auth_user, clan_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/clans/{clan_id}/invitations/{invitation_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def cancel_invitation_endpoint(
	clan_id: UUID,
	invitation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.cancel(auth_user, clan_id, invitation_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/me/clan-invitations", response_model=List[dto.InvitationResponse])
async def my_invitations_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.InvitationResponse]:
	try:
		return await _service.list_for_user(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/clans/invitations/{invitation_id}/accept", response_model=dto.MemberResponse)
async def accept_invitation_endpoint(
	invitation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MemberResponse:
	try:
		return await _service.accept(auth_user, invitation_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post(
	"/clans/invitations/{invitation_id}/decline",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def decline_invitation_endpoint(
	invitation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.decline(auth_user, invitation_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
