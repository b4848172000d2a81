"""Application funnel for clans with join_type ``application``."""

from __future__ import annotations

import logging
from uuid import UUID

from clanhall.clans.domain import policies, repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid, utcnow
from clanhall.clans.domain.exceptions import ConflictError, ForbiddenError, NotFoundError
from clanhall.clans.schemas import dto
from clanhall.clans.sockets import server as clan_sockets
from clanhall.infra.auth import AuthenticatedUser
from clanhall.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class ApplicationsService(ClanContextMixin):
	"""Submits applications and lets authorized members resolve them."""

	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def apply(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		payload: dto.ApplicationCreateRequest,
	) -> dto.ApplicationResponse:
		clan = await self._require_clan(clan_id)
		if clan.join_type != "application":
			raise ForbiddenError("clan_not_accepting_applications")
		user_id = user_uuid(user)
		if await self.repo.get_membership_for_user(user_id) is not None:
			raise ConflictError("already_in_clan")
		policies.ensure_answers_match_template(clan.application_template, payload.answers)
		application = await self.repo.create_application(clan_id=clan.id, user_id=user_id, answers=payload.answers)
		_LOG.info("clans.application.submitted", extra={"clan_id": str(clan.id), "application_id": str(application.id)})
		return dto.ApplicationResponse(**application.model_dump())

	async def list_pending(self, user: AuthenticatedUser, clan_id: UUID) -> list[dto.ApplicationResponse]:
		clan = await self._require_clan(clan_id)
		policies.require_toggle(clan, await self._actor(clan, user), "can_accept_members")
		applications = await self.repo.list_applications(clan.id, status="pending")
		return [dto.ApplicationResponse(**application.model_dump()) for application in applications]

	async def handle(
		self,
		user: AuthenticatedUser,
		application_id: UUID,
		payload: dto.ApplicationHandleRequest,
	) -> dto.ApplicationResponse:
		application = await self.repo.get_application(application_id)
		if application is None:
			raise NotFoundError("application_not_found")
		clan = await self._require_clan(application.clan_id)
		policies.require_toggle(clan, await self._actor(clan, user), "can_accept_members")
		if application.status != "pending":
			raise ConflictError("application_already_processed")
		default_role_id = None
		if payload.status == "accepted":
			default_role_id = (await self._default_role(clan.id)).id
		# the conditional update inside resolve_application settles concurrent handlers
		resolved = await self.repo.resolve_application(
			application.id,
			status=payload.status,
			handled_by=user_uuid(user),
			default_role_id=default_role_id,
			now=utcnow(),
		)
		obs_metrics.application_handled(payload.status)
		await self.repo.record_audit_event(
			clan_id=clan.id,
			user_id=user_uuid(user),
			action=f"application.{payload.status}",
			details={"application_id": str(application.id), "applicant_id": str(application.user_id)},
		)
		if payload.status == "accepted":
			obs_metrics.membership_changed("application")
			await clan_sockets.publish_clan(clan.id, "clan:member.joined", {"user_id": str(application.user_id)})
		await clan_sockets.publish_user(
			application.user_id,
			"clan:application.resolved",
			{"clan_id": str(clan.id), "status": payload.status},
		)
		return dto.ApplicationResponse(**resolved.model_dump())
