"""Application routes."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.applications_service import ApplicationsService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans:applications"])
_service = ApplicationsService()


@router.post("/clans/{clan_id}/applications", response_model=dto.ApplicationResponse, status_code=201)
async def apply_endpoint(
	clan_id: UUID,
	payload: dto.ApplicationCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApplicationResponse:
	try:
		return await _service.apply(auth_user, clan_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/clans/{clan_id}/applications", response_model=List[dto.ApplicationResponse])
async def list_applications_endpoint(
	clan_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.ApplicationResponse]:
	try:
		return await _service.list_pending(auth_user, clan_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/clans/applications/{application_id}/handle", response_model=dto.ApplicationResponse)
async def handle_application_endpoint(
	application_id: UUID,
	payload: dto.ApplicationHandleRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApplicationResponse:
	try:
		return await _service.handle(auth_user, application_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
