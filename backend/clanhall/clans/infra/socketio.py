"""Factory helpers for clan Socket.IO namespaces."""

from __future__ import annotations

import socketio

from clanhall.clans.sockets import server as clan_server
from clanhall.clans.sockets.namespaces.clan_chat import ClanChatNamespace
from clanhall.domain.messages.sockets import DirectMessageNamespace, set_namespace as set_dm_namespace


def register(server: socketio.AsyncServer) -> None:
	"""Register the clan and direct-message namespaces on the Socket.IO server."""
	clan_ns = ClanChatNamespace()
	dm_ns = DirectMessageNamespace()
	server.register_namespace(clan_ns)
	server.register_namespace(dm_ns)
	clan_server.set_namespace(clan_ns)
	set_dm_namespace(dm_ns)
