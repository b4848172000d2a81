"""Clan catalogue and lifecycle routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Response

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.clans_service import ClansService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans"])
_service = ClansService()


@router.post("/clans", response_model=dto.ClanResponse, status_code=201)
async def create_clan_endpoint(
	payload: dto.ClanCreateRequest,
	idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ClanResponse:
	try:
		return await _service.create_clan(auth_user, payload, idempotency_key=idempotency_key)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/clans", response_model=dto.ClanListResponse)
async def list_clans_endpoint(
	search: str | None = None,
	page: int = Query(default=1, ge=1),
	limit: int = Query(default=20, ge=1, le=100),
) -> dto.ClanListResponse:
	try:
		return await _service.list_clans(search=search, page=page, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/clans/{tag}", response_model=dto.ClanDetailResponse)
async def get_clan_endpoint(
	tag: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ClanDetailResponse:
	try:
		return await _service.get_clan_detail(auth_user, tag)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/clans/{tag}/details", response_model=dto.ClanResponse)
async def update_details_endpoint(
	tag: str,
	payload: dto.ClanDetailsUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ClanResponse:
	try:
		return await _service.update_details(auth_user, tag, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/clans/{clan_id}/settings", response_model=dto.ClanResponse)
async def update_settings_endpoint(
	clan_id: UUID,
	payload: dto.ClanSettingsUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ClanResponse:
	try:
		return await _service.update_settings(auth_user, clan_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/clans/{tag}",
	status_code=204,
	response_class=Response,
	response_model=None,
)
async def delete_clan_endpoint(
	tag: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	try:
		await _service.delete_clan(auth_user, tag)
		return None
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
