"""Warning routes."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.warnings_service import WarningsService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans:warnings"])
_service = WarningsService()


@router.get("/clans/{clan_id}/members/warnings", response_model=List[dto.WarningResponse])
async def list_warnings_endpoint(
	clan_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.WarningResponse]:
	try:
		return await _service.list_for_clan(auth_user, clan_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/clans/{clan_id}/members/warnings/{warning_id}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def delete_warning_endpoint(
	clan_id: UUID,
	warning_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.delete(auth_user, clan_id, warning_id)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/clans/{clan_id}/members/{user_id}/warnings", response_model=dto.WarningResponse, status_code=201)
async def issue_warning_endpoint(
	clan_id: UUID,
	user_id: UUID,
	payload: dto.WarningCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.WarningResponse:
	try:
		return await _service.issue(auth_user, clan_id, user_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/me/clan-warnings", response_model=List[dto.WarningResponse])
async def my_warnings_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.WarningResponse]:
	try:
		return await _service.list_mine(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
