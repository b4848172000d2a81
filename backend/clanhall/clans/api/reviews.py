"""Clan review routes."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from clanhall.clans.api._errors import to_http_error
from clanhall.clans.domain.reviews_service import ReviewsService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["clans:reviews"])
_service = ReviewsService()


@router.post("/clans/{clan_id}/reviews", response_model=dto.ReviewResponse, status_code=201)
async def create_review_endpoint(
	clan_id: UUID,
	payload: dto.ReviewCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ReviewResponse:
	try:
		return await _service.create(auth_user, clan_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/clans/{clan_id}/reviews", response_model=List[dto.ReviewResponse])
async def list_reviews_endpoint(clan_id: UUID) -> List[dto.ReviewResponse]:
	try:
		return await _service.list_reviews(clan_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
