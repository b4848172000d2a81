"""Socket.IO namespace for clan chat and clan-scoped realtime events."""

from __future__ import annotations

import logging
from typing import Dict, Set
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from clanhall.clans.domain import commands, repo as repo_module
from clanhall.clans.domain.chat_service import ClanChatService
from clanhall.clans.domain.exceptions import ClanError
from clanhall.clans.schemas import dto
from clanhall.clans.sockets.namespaces.base import BaseClanNamespace
from clanhall.clans.sockets.server import clan_room, user_room
from clanhall.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)


class ClanChatNamespace(BaseClanNamespace):
	"""Namespace for /clans connections.

	Every connection sits in its ``user:{id}`` room; ``join_clan_chat`` adds the
	clan channel rooms the member may read.
	"""

	def __init__(
		self,
		*,
		repository: repo_module.ClansRepository | None = None,
		chat: ClanChatService | None = None,
		processor: commands.ChatCommandProcessor | None = None,
	) -> None:
		super().__init__("/clans")
		self.repo = repository or repo_module.ClansRepository()
		self.chat = chat or ClanChatService(repository=self.repo)
		self.processor = processor or commands.ChatCommandProcessor(repository=self.repo)
		self._rooms: Dict[str, Set[str]] = {}

	async def on_connect(self, sid: str, environ: dict, auth: dict | None = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		try:
			user = self._resolve_user(environ, auth)
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		self._sessions[sid] = user
		self._rooms[sid] = set()
		await self.enter_room(sid, user_room(user.id))
		await self.emit("clan:ready", {"user_id": user.id}, room=sid)

	async def on_disconnect(self, sid: str, reason: str | None = None) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		user = self._sessions.pop(sid, None)
		for room in self._rooms.pop(sid, set()):
			await self.leave_room(sid, room)
		if user:
			await self.leave_room(sid, user_room(user.id))

	async def on_join_clan_chat(self, sid: str, data: dict) -> dict:
		obs_metrics.socket_event(self.namespace, "join_clan_chat")
		user = self._require_user(sid)
		try:
			clan_id = UUID(str((data or {}).get("clan_id")))
			clan, member = await self.chat.membership_context(user, clan_id)
		except ValueError:
			return self.error_ack(ClanError("invalid_clan_id"))
		except ClanError as exc:
			return self.error_ack(exc)
		channels = self.chat.readable_channels(clan, member)
		for channel in channels:
			room = clan_room(clan.id, channel)
			await self.enter_room(sid, room)
			self._rooms[sid].add(room)
		return {"ok": True, "clan_id": str(clan.id), "channels": channels}

	async def on_leave_clan_chat(self, sid: str, data: dict) -> dict:
		self._require_user(sid)
		clan_id = str((data or {}).get("clan_id"))
		for room in [room for room in self._rooms.get(sid, set()) if room.startswith(f"clan:{clan_id}:")]:
			await self.leave_room(sid, room)
			self._rooms[sid].discard(room)
		return {"ok": True}

	async def evict(self, user_id: UUID | str, rooms: list[str]) -> int:
		"""Remove every connection of ``user_id`` from ``rooms``; returns rooms left."""
		left = 0
		for sid, session in list(self._sessions.items()):
			if session.id != str(user_id):
				continue
			held = self._rooms.get(sid, set())
			for room in rooms:
				if room in held:
					await self.leave_room(sid, room)
					held.discard(room)
					left += 1
		return left

	async def on_request_clan_history(self, sid: str, data: dict) -> dict:
		user = self._require_user(sid)
		try:
			clan_id = UUID(str((data or {}).get("clan_id")))
			messages = await self.chat.history(user, clan_id)
		except ValueError:
			return self.error_ack(ClanError("invalid_clan_id"))
		except ClanError as exc:
			return self.error_ack(exc)
		return {"ok": True, "messages": [message.model_dump(mode="json") for message in messages]}

	async def on_send_clan_message(self, sid: str, data: dict) -> dict:
		obs_metrics.socket_event(self.namespace, "send_clan_message")
		user = self._require_user(sid)
		try:
			payload = dto.ClanMessageCreate.model_validate(data or {})
			command = commands.parse(payload.content) if payload.parent_id else None
			if command is not None:
				clan, _member, parent = await self.chat.prepare_post(user, payload)
				result = await self.processor.execute(user, clan, command, parent)
				await self.emit("clan:command.result", result.model_dump(mode="json"), room=sid)
				return {"ok": True, "command": result.model_dump(mode="json")}
			message = await self.chat.send(user, payload)
		except (ClanError, PydanticValidationError) as exc:
			ack = self.error_ack(exc)
			await self.emit("clan:error", ack, room=sid)
			return ack
		body = message.model_dump(mode="json")
		await self.emit("clan:message.created", body, room=clan_room(message.clan_id, message.channel))
		return {"ok": True, "message": body}

	async def on_edit_clan_message(self, sid: str, data: dict) -> dict:
		user = self._require_user(sid)
		try:
			message = await self.chat.edit(user, dto.ClanMessageEdit.model_validate(data or {}))
		except (ClanError, PydanticValidationError) as exc:
			return self.error_ack(exc)
		body = message.model_dump(mode="json")
		await self.emit("clan:message.updated", body, room=clan_room(message.clan_id, message.channel))
		return {"ok": True, "message": body}

	async def on_delete_clan_message(self, sid: str, data: dict) -> dict:
		user = self._require_user(sid)
		try:
			message = await self.chat.delete(user, UUID(str((data or {}).get("message_id"))))
		except ValueError:
			return self.error_ack(ClanError("invalid_message_id"))
		except ClanError as exc:
			return self.error_ack(exc)
		body = message.model_dump(mode="json")
		await self.emit("clan:message.deleted", body, room=clan_room(message.clan_id, message.channel))
		return {"ok": True, "message": body}
