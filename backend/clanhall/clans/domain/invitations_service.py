"""Time-boxed invitations into a clan."""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from clanhall.clans.domain import policies, repo as repo_module
from clanhall.clans.domain.context import ClanContextMixin, user_uuid, utcnow
from clanhall.clans.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from clanhall.clans.schemas import dto
from clanhall.clans.sockets import server as clan_sockets
from clanhall.infra.auth import AuthenticatedUser
from clanhall.obs import metrics as obs_metrics
from clanhall.settings import settings

_LOG = logging.getLogger(__name__)


class InvitationsService(ClanContextMixin):
	"""Create, list, accept, decline and cancel invitations.

	Expiry is enforced lazily: listings and acceptance compare ``expires_at``
	with the current time, and stale pending rows are flagged ``expired`` when
	touched. The optional reaper job only tidies rows nobody touched.
	"""

	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def create(
		self,
		user: AuthenticatedUser,
		clan_id: UUID,
		payload: dto.InvitationCreateRequest,
	) -> dto.InvitationResponse:
		clan = await self._require_clan(clan_id)
		actor = policies.require_toggle(clan, await self._actor(clan, user), "can_invite_members")
		if payload.user_id == actor.user_id:
			raise ValidationError("cannot_invite_self", fields=["user_id"])
		if await self.repo.get_membership_for_user(payload.user_id) is not None:
			raise ConflictError("invitee_already_in_clan")
		now = utcnow()
		invitation = await self.repo.create_invitation(
			clan_id=clan.id,
			invitee_id=payload.user_id,
			inviter_id=actor.user_id,
			expires_at=now + timedelta(hours=settings.clan_invitation_ttl_hours),
			now=now,
		)
		obs_metrics.invitation_event("created")
		response = dto.InvitationResponse(**invitation.model_dump())
		await clan_sockets.publish_user(
			payload.user_id,
			"clan:invitation",
			{"invitation": response.model_dump(mode="json"), "clan_tag": clan.tag, "clan_name": clan.name},
		)
		return response

	async def list_for_clan(self, user: AuthenticatedUser, clan_id: UUID) -> list[dto.InvitationResponse]:
		clan = await self._require_clan(clan_id)
		policies.require_toggle(clan, await self._actor(clan, user), "can_invite_members")
		invitations = await self.repo.list_clan_invitations(clan.id, now=utcnow())
		return [dto.InvitationResponse(**invitation.model_dump()) for invitation in invitations]

	async def list_for_user(self, user: AuthenticatedUser) -> list[dto.InvitationResponse]:
		invitations = await self.repo.list_user_invitations(user_uuid(user), now=utcnow())
		return [dto.InvitationResponse(**invitation.model_dump()) for invitation in invitations]

	async def accept(self, user: AuthenticatedUser, invitation_id: UUID) -> dto.MemberResponse:
		user_id = user_uuid(user)
		invitation = await self.repo.get_invitation(invitation_id)
		if invitation is None or invitation.invitee_id != user_id or invitation.status != "pending":
			raise NotFoundError("invitation_not_found")
		now = utcnow()
		if not invitation.is_active(now):
			await self.repo.mark_invitation_expired(invitation.id)
			obs_metrics.invitation_event("expired")
			raise NotFoundError("invitation_expired")
		if await self.repo.get_membership_for_user(user_id) is not None:
			raise ConflictError("already_in_clan")
		default_role = await self._default_role(invitation.clan_id)
		await self.repo.accept_invitation(invitation.id, role_id=default_role.id, now=now)
		member = await self.repo.get_member(invitation.clan_id, user_id)
		if member is None:
			raise NotFoundError("member_not_found")
		obs_metrics.invitation_event("accepted")
		obs_metrics.membership_changed("invitation")
		await clan_sockets.publish_clan(invitation.clan_id, "clan:member.joined", {"user_id": str(user_id)})
		return dto.member_response(member)

	async def decline(self, user: AuthenticatedUser, invitation_id: UUID) -> None:
		invitation = await self.repo.get_invitation(invitation_id)
		if invitation is None or invitation.invitee_id != user_uuid(user):
			raise NotFoundError("invitation_not_found")
		if not await self.repo.delete_invitation(invitation.id):
			raise NotFoundError("invitation_not_found")
		obs_metrics.invitation_event("declined")

	async def cancel(self, user: AuthenticatedUser, clan_id: UUID, invitation_id: UUID) -> None:
		clan = await self._require_clan(clan_id)
		invitation = await self.repo.get_invitation(invitation_id)
		if invitation is None or invitation.clan_id != clan.id:
			raise NotFoundError("invitation_not_found")
		actor = policies.require_member(await self._actor(clan, user))
		if invitation.inviter_id != actor.user_id and not policies.has_toggle(clan, actor, "can_invite_members"):
			raise ForbiddenError("permission_denied", context={"permission": "can_invite_members"})
		if not await self.repo.delete_invitation(invitation.id):
			raise NotFoundError("invitation_not_found")
		obs_metrics.invitation_event("cancelled")
		_LOG.info("clans.invitation.cancelled", extra={"clan_id": str(clan.id), "invitation_id": str(invitation.id)})
