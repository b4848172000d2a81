"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from clanhall.obs import logging as obs_logging
from clanhall.obs import middleware
from clanhall.settings import settings

_initialised = False


def init(app: FastAPI) -> None:
	global _initialised
	if _initialised:
		return
	if settings.obs_enabled:
		obs_logging.configure_logging()
	middleware.install(app)
	_initialised = True


__all__ = ["init"]
