"""Ownership transfer route."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.ownership_service import OwnershipService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans:ownership"])
_service = OwnershipService()


@router.post("/clans/{tag}/transfer-ownership", response_model=dto.ClanResponse)
async def transfer_ownership_endpoint(
	tag: str,
	payload: dto.OwnershipTransferRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ClanResponse:
	try:
		return await _service.transfer(auth_user, tag, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
