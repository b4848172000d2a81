"""FastAPI routers for the clans domain."""

from __future__ import annotations

from fastapi import APIRouter

from clanhall.clans.api import (
	applications,
	chat,
	clans,
	invitations,
	members,
	ownership,
	reviews,
	roles,
	warnings,
)

router = APIRouter(prefix="/api/v1")

router.include_router(clans.router)
router.include_router(roles.router)
router.include_router(warnings.router)
router.include_router(members.router)
router.include_router(applications.router)
router.include_router(invitations.router)
router.include_router(ownership.router)
router.include_router(reviews.router)
router.include_router(chat.router)

__all__ = ["router"]
