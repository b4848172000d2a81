"""Custom exceptions for clan services."""

from __future__ import annotations

from typing import Any, Iterable

from fastapi import status


class ClanError(Exception):
	"""Base class for clan related errors.

	``detail`` is a stable snake_case code; ``context`` carries optional
	machine-readable specifics (offending fields, member counts) for clients.
	"""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "clan_error"

	def __init__(self, detail: str | None = None, *, context: dict[str, Any] | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail
		self.context: dict[str, Any] = dict(context or {})


class NotFoundError(ClanError):
	"""Thrown when a resource is not visible or missing."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class ForbiddenError(ClanError):
	"""Raised when authorization fails."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class ConflictError(ClanError):
	"""Raised when a uniqueness rule or concurrent change blocks the operation."""

	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"


class ValidationError(ClanError):
	"""Raised for validation errors not covered by FastAPI schema validation."""

	status_code = 422
	detail = "validation_error"

	def __init__(
		self,
		detail: str | None = None,
		*,
		fields: Iterable[str] = (),
		context: dict[str, Any] | None = None,
	) -> None:
		super().__init__(detail, context=context)
		self.fields: list[str] = list(fields)
		if self.fields:
			self.context.setdefault("fields", self.fields)


class IdempotencyConflict(ConflictError):
	"""Raised when an idempotency key is reused with a mismatched payload."""

	detail = "idempotency_conflict"
