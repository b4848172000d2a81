"""Role management routes."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.roles_service import RolesService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans:roles"])
_service = RolesService()


@router.get("/clans/{clan_id}/roles", response_model=List[dto.RoleResponse])
async def list_roles_endpoint(
	clan_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> List[dto.RoleResponse]:
	try:
		return await _service.list_roles(clan_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/clans/{clan_id}/roles", response_model=dto.RoleResponse, status_code=201)
async def create_role_endpoint(
	clan_id: UUID,
	payload: dto.RoleCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.RoleResponse:
	try:
		return await _service.create_role(auth_user, clan_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/clans/{clan_id}/roles/{role_id}", response_model=dto.RoleResponse)
async def update_role_endpoint(
	clan_id: UUID,
	role_id: UUID,
	payload: dto.RoleUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.RoleResponse:
	try:
		return await _service.update_role(auth_user, clan_id, role_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/clans/{clan_id}/roles/{role_id}", response_model=dto.RoleDeleteResponse)
async def delete_role_endpoint(
	clan_id: UUID,
	role_id: UUID,
	migrate_to: UUID | None = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.RoleDeleteResponse:
	try:
		return await _service.delete_role(auth_user, clan_id, role_id, migrate_to=migrate_to)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
