"""Slash commands typed in clan chat as a reply to another member's message.

The replied-to message's author is the target. Each command reuses the
matching service operation, so permission checks are identical to the HTTP
routes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from clanhall.clans.domain import models, repo as repo_module
from clanhall.clans.domain.exceptions import NotFoundError, ValidationError
from clanhall.clans.domain.membership_service import MembershipService
from clanhall.clans.domain.warnings_service import WarningsService
from clanhall.clans.schemas import dto
from clanhall.infra.auth import AuthenticatedUser

DEFAULT_MUTE_MINUTES = 60


@dataclass(slots=True)
class ParsedCommand:
	name: str
	args: list[str] = field(default_factory=list)

	@property
	def rest(self) -> str:
		return " ".join(self.args).strip()


def parse(content: str) -> ParsedCommand | None:
	text = content.strip()
	if not text.startswith("/") or len(text) < 2:
		return None
	head, *args = text[1:].split()
	return ParsedCommand(name=head.lower(), args=args)


def _require_reason(text: str) -> str:
	if not text:
		raise ValidationError("reason_required", fields=["reason"])
	return text[:255]


class ChatCommandProcessor:
	"""Dispatches parsed chat commands to membership and warning operations."""

	def __init__(
		self,
		*,
		repository: repo_module.ClansRepository | None = None,
		membership: MembershipService | None = None,
		warnings: WarningsService | None = None,
	) -> None:
		self.repo = repository or repo_module.ClansRepository()
		self.membership = membership or MembershipService(repository=self.repo)
		self.warnings = warnings or WarningsService(repository=self.repo)

	async def execute(
		self,
		user: AuthenticatedUser,
		clan: models.Clan,
		command: ParsedCommand,
		parent: models.ClanMessage | None,
	) -> dto.CommandResult:
		if parent is None:
			raise ValidationError("command_requires_reply", fields=["parent_id"])
		target_id = parent.author_id
		handler = getattr(self, f"_cmd_{command.name}", None)
		if handler is None:
			raise ValidationError("unknown_command", fields=["content"], context={"command": command.name})
		detail = await handler(user, clan.id, target_id, command)
		return dto.CommandResult(command=command.name, detail=detail, target_user_id=target_id)

	async def _cmd_kick(self, user: AuthenticatedUser, clan_id: UUID, target_id: UUID, command: ParsedCommand) -> str:
		await self.membership.kick(user, clan_id, target_id, reason=command.rest or None)
		return "member_kicked"

	async def _cmd_mute(self, user: AuthenticatedUser, clan_id: UUID, target_id: UUID, command: ParsedCommand) -> str:
		args = list(command.args)
		minutes = DEFAULT_MUTE_MINUTES
		if args and args[0].isdigit():
			minutes = int(args.pop(0))
		payload = dto.MuteRequest(reason=_require_reason(" ".join(args).strip()), duration_minutes=minutes)
		await self.membership.mute(user, clan_id, target_id, payload)
		return "member_muted"

	async def _cmd_unmute(self, user: AuthenticatedUser, clan_id: UUID, target_id: UUID, command: ParsedCommand) -> str:
		await self.membership.unmute(user, clan_id, target_id)
		return "member_unmuted"

	async def _cmd_warn(self, user: AuthenticatedUser, clan_id: UUID, target_id: UUID, command: ParsedCommand) -> str:
		payload = dto.WarningCreateRequest(reason=_require_reason(command.rest))
		await self.warnings.issue(user, clan_id, target_id, payload)
		return "warning_issued"

	async def _cmd_unwarn(self, user: AuthenticatedUser, clan_id: UUID, target_id: UUID, command: ParsedCommand) -> str:
		await self.warnings.revoke_latest(user, clan_id, target_id)
		return "warning_revoked"

	async def _cmd_role(self, user: AuthenticatedUser, clan_id: UUID, target_id: UUID, command: ParsedCommand) -> str:
		if not command.args:
			raise ValidationError("role_argument_required", fields=["content"])
		direction = command.args[0].lower()
		if direction in ("up", "down"):
			steps = 1
			if len(command.args) > 1:
				if not command.args[1].isdigit():
					raise ValidationError("role_steps_invalid", fields=["content"])
				steps = max(int(command.args[1]), 1)
			await self.membership.shift_role(user, clan_id, target_id, steps=steps if direction == "up" else -steps)
			return f"role_{direction}"
		role = await self.repo.get_role_by_name(clan_id, command.rest)
		if role is None:
			raise NotFoundError("role_not_found")
		await self.membership.change_role(user, clan_id, target_id, dto.MemberRoleUpdateRequest(role_id=role.id))
		return "role_set"
