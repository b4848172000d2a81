"""Clan reviews written by current or former members."""

from __future__ import annotations

from uuid import UUID

from clanhall.clans.domain import repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid
from clanhall.clans.domain.exceptions import ForbiddenError
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser


class ReviewsService(ClanContextMixin):
	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def create(self, user: AuthenticatedUser, clan_id: UUID, payload: dto.ReviewCreateRequest) -> dto.ReviewResponse:
		clan = await self._require_clan(clan_id)
		author_id = user_uuid(user)
		if not await self.repo.has_member_history(clan.id, author_id):
			raise ForbiddenError("membership_history_required")
		review = await self.repo.create_review(
			clan_id=clan.id,
			author_id=author_id,
			rating=payload.rating,
			text=payload.text.strip(),
		)
		return dto.ReviewResponse(**review.model_dump())

	async def list_reviews(self, clan_id: UUID) -> list[dto.ReviewResponse]:
		clan = await self._require_clan(clan_id)
		return [dto.ReviewResponse(**review.model_dump()) for review in await self.repo.list_reviews(clan.id)]
