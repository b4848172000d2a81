"""Socket.IO namespace for direct messages."""

from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from clanhall.clans.domain.exceptions import ClanError
from clanhall.clans.sockets.namespaces.base import BaseClanNamespace
from clanhall.clans.sockets.server import user_room
from clanhall.domain.messages import schemas
from clanhall.domain.messages.service import DirectMessageService
from clanhall.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

_namespace: Optional["DirectMessageNamespace"] = None


class DirectMessageNamespace(BaseClanNamespace):
	"""Places every client in its user room; both parties of a conversation receive each event."""

	def __init__(self, *, service: DirectMessageService | None = None) -> None:
		super().__init__("/dm")
		self.service = service or DirectMessageService()

	async def on_connect(self, sid: str, environ: dict, auth: dict | None = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		try:
			user = self._resolve_user(environ, auth)
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		self._sessions[sid] = user
		await self.enter_room(sid, user_room(user.id))
		await self.emit("dm:ready", {"ok": True}, room=sid)

	async def on_disconnect(self, sid: str, reason: str | None = None) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		user = self._sessions.pop(sid, None)
		if user:
			await self.leave_room(sid, user_room(user.id))

	async def _fan_out(self, event: str, message: schemas.DirectMessageResponse) -> dict[str, Any]:
		payload = message.model_dump(mode="json")
		obs_metrics.socket_event(self.namespace, event)
		for user_id in {message.sender_id, message.recipient_id}:
			await self.emit(event, payload, room=user_room(user_id))
		return payload

	async def on_send_dm(self, sid: str, payload: dict) -> dict[str, Any]:
		user = self._require_user(sid)
		try:
			request = schemas.DirectMessageCreate.model_validate(payload or {})
			message = await self.service.send(user, request)
		except (ClanError, PydanticValidationError) as exc:
			return self.error_ack(exc)
		return {"ok": True, "message": await self._fan_out("dm:message", message)}

	async def on_edit_dm(self, sid: str, payload: dict) -> dict[str, Any]:
		user = self._require_user(sid)
		try:
			request = schemas.DirectMessageEdit.model_validate(payload or {})
			message = await self.service.edit(user, request)
		except (ClanError, PydanticValidationError) as exc:
			return self.error_ack(exc)
		return {"ok": True, "message": await self._fan_out("dm:updated", message)}

	async def on_delete_dm(self, sid: str, payload: dict) -> dict[str, Any]:
		user = self._require_user(sid)
		try:
			message_id = UUID(str((payload or {}).get("message_id")))
		except ValueError:
			return self.error_ack(ClanError("invalid_message_id"))
		try:
			message = await self.service.delete(user, message_id)
		except ClanError as exc:
			return self.error_ack(exc)
		return {"ok": True, "message": await self._fan_out("dm:updated", message)}

	async def on_typing(self, sid: str, payload: dict) -> None:
		user = self._require_user(sid)
		peer_id = (payload or {}).get("peer_id")
		if not peer_id:
			return
		obs_metrics.socket_event(self.namespace, "dm:typing")
		await self.emit("dm:typing", {"from_user_id": user.id, "peer_id": str(peer_id)}, room=user_room(peer_id))


def set_namespace(namespace: Optional[DirectMessageNamespace]) -> None:
	global _namespace
	_namespace = namespace


async def publish_message(event: str, message: schemas.DirectMessageResponse) -> None:
	"""Fan-out for messages sent over HTTP; failures are logged and the send stands."""
	if _namespace is None:
		return
	try:
		await _namespace._fan_out(event, message)
	except Exception:
		_LOG.warning("messages.realtime.emit_failed", extra={"event": event, "message_id": str(message.id)}, exc_info=True)
