"""Entry-point utilities for emitting via the clans Socket.IO namespace."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from clanhall.obs import metrics as obs_metrics

if TYPE_CHECKING:
	from clanhall.clans.sockets.namespaces.clan_chat import ClanChatNamespace

_LOG = logging.getLogger(__name__)

_clan_ns: Optional["ClanChatNamespace"] = None

CLAN_CHANNELS = ("general", "admin")


def clan_room(clan_id: UUID | str, channel: str = "general") -> str:
	return f"clan:{clan_id}:{channel}"


def user_room(user_id: UUID | str) -> str:
	return f"user:{user_id}"


def set_namespace(namespace: Optional["ClanChatNamespace"]) -> None:
	global _clan_ns
	_clan_ns = namespace


async def emit_clan(clan_id: UUID | str, event: str, payload: dict, *, channel: str = "general") -> None:
	if _clan_ns is None:
		return
	obs_metrics.socket_event(_clan_ns.namespace, event)
	await _clan_ns.emit(event, payload, room=clan_room(clan_id, channel))


async def emit_user(user_id: UUID | str, event: str, payload: dict) -> None:
	if _clan_ns is None:
		return
	obs_metrics.socket_event(_clan_ns.namespace, event)
	await _clan_ns.emit(event, payload, room=user_room(user_id))


async def publish_clan(clan_id: UUID | str, event: str, payload: dict) -> None:
	"""Best-effort fan-out used by HTTP flows; delivery failures are logged only."""
	try:
		await emit_clan(clan_id, event, payload)
	except Exception:
		_LOG.warning("clans.realtime.emit_failed", extra={"event": event, "clan_id": str(clan_id)}, exc_info=True)


async def publish_user(user_id: UUID | str, event: str, payload: dict) -> None:
	try:
		await emit_user(user_id, event, payload)
	except Exception:
		_LOG.warning("clans.realtime.emit_failed", extra={"event": event, "user_id": str(user_id)}, exc_info=True)


async def evict_user(
	clan_id: UUID | str,
	user_id: UUID | str,
	*,
	channels: tuple[str, ...] = CLAN_CHANNELS,
) -> None:
	"""Pull a user's live connections out of clan chat rooms they may no longer read."""
	if _clan_ns is None:
		return
	try:
		await _clan_ns.evict(user_id, [clan_room(clan_id, channel) for channel in channels])
	except Exception:
		_LOG.warning("clans.realtime.evict_failed", extra={"clan_id": str(clan_id), "user_id": str(user_id)}, exc_info=True)
