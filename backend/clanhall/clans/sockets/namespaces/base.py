"""Shared helpers for clan Socket.IO namespaces."""

from __future__ import annotations

from typing import Any, Dict, Optional

import socketio
from fastapi import HTTPException
from pydantic import ValidationError as PydanticValidationError

from clanhall.clans.domain.exceptions import ClanError
from clanhall.infra.auth import AuthenticatedUser, resolve_identity


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class BaseClanNamespace(socketio.AsyncNamespace):
	"""Base namespace that resolves an AuthenticatedUser from the handshake."""

	def __init__(self, namespace: str) -> None:
		super().__init__(namespace)
		self._sessions: Dict[str, AuthenticatedUser] = {}

	def _resolve_user(self, environ: dict, auth: dict | None = None) -> AuthenticatedUser:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
		bearer = auth_payload.get("token")
		header = _header(scope, "authorization")
		if not bearer and header and header.lower().startswith("bearer "):
			bearer = header[7:].strip()
		user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
		roles = auth_payload.get("roles") or _header(scope, "x-user-roles")
		try:
			return resolve_identity(bearer=bearer, user_id=user_id, roles=roles)
		except HTTPException as exc:
			raise ConnectionRefusedError(str(exc.detail)) from exc

	def get_user(self, sid: str) -> Optional[AuthenticatedUser]:
		return self._sessions.get(sid)

	def _require_user(self, sid: str) -> AuthenticatedUser:
		user = self._sessions.get(sid)
		if user is None:
			raise ConnectionRefusedError("unauthenticated")
		return user

	@staticmethod
	def error_ack(exc: Exception) -> dict[str, Any]:
		"""Acknowledgement payload for a rejected event."""
		if isinstance(exc, ClanError):
			return {"ok": False, "error": exc.detail, **({"context": exc.context} if exc.context else {})}
		if isinstance(exc, PydanticValidationError):
			return {"ok": False, "error": "validation_error", "fields": [".".join(map(str, err["loc"])) for err in exc.errors()]}
		raise exc
