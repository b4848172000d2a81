"""Authentication helpers for FastAPI endpoints and socket handshakes.

- Bearer JWTs (HS256) are verified with settings.secret_key.
- Dev headers (X-User-Id / X-User-Roles) are only respected in development.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from clanhall.infra import jwt as jwt_helper
from clanhall.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	handle: Optional[str] = None
	roles: Tuple[str, ...] = ()

	def has_role(self, role: str) -> bool:
		return role in self.roles


_bearer_scheme = HTTPBearer(auto_error=False)


def _parse_roles(raw: object) -> Tuple[str, ...]:
	if isinstance(raw, (list, tuple)):
		return tuple(str(r).strip() for r in raw if str(r).strip())
	if isinstance(raw, str):
		return tuple(part.strip() for part in raw.split(",") if part.strip())
	return ()


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode an access JWT and return the identity it carries."""
	try:
		payload = jwt_helper.decode_access(token)
	except InvalidTokenError as exc:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from exc
	handle = payload.get("handle")
	return AuthenticatedUser(
		id=str(payload["sub"]).strip(),
		handle=str(handle) if handle is not None else None,
		roles=_parse_roles(payload.get("roles") or payload.get("role")),
	)


def resolve_identity(
	*,
	bearer: Optional[str],
	user_id: Optional[str],
	roles: Optional[str] = None,
) -> AuthenticatedUser:
	"""Shared resolution used by HTTP dependencies and socket namespaces."""
	if bearer:
		return verify_access_jwt(bearer)
	if settings.is_dev() and user_id:
		return AuthenticatedUser(id=user_id, roles=_parse_roles(roles or ""))
	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_roles: Optional[str] = Header(default=None, alias="X-User-Roles"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow simple headers. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	bearer = None
	if credentials and credentials.scheme.lower() == "bearer":
		bearer = credentials.credentials
	return resolve_identity(bearer=bearer, user_id=x_user_id, roles=x_user_roles)
