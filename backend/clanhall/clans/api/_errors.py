"""Error translation helpers for clan API."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from clanhall.clans.domain import exceptions

_LOG = logging.getLogger(__name__)


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, exceptions.ClanError):
		if exc.context:
			return HTTPException(status_code=exc.status_code, detail={"code": exc.detail, **exc.context})
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	_LOG.exception("clans.api.unhandled_error", exc_info=exc)
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal_error")
