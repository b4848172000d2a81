"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clanhall.api import messages as messages_api
from clanhall.api import ops
from clanhall.api.errors import install_error_handlers
from clanhall.clans.api import router as clans_router
from clanhall.clans.infra import socketio as clans_socketio
from clanhall.clans.infra.scheduler import ClanScheduler, build_scheduler
from clanhall.infra import postgres
from clanhall.obs import init as obs_init
from clanhall.settings import settings

_LOG = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	scheduler: ClanScheduler | None = None
	if settings.clans_jobs_enabled:
		scheduler = build_scheduler()
		scheduler.start()
		app.state.clans_scheduler = scheduler
		_LOG.info("clans.jobs.started", extra={"jobs": scheduler.job_ids()})
	try:
		yield
	finally:
		if scheduler is not None:
			scheduler.shutdown()
		await postgres.close_pool()


app = FastAPI(title="Clanhall", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

app.include_router(ops.router, tags=["ops"])
app.include_router(clans_router)
app.include_router(messages_api.router)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
clans_socketio.register(sio)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
