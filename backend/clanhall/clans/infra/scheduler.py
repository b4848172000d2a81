"""APScheduler wrapper for clan maintenance jobs."""

from __future__ import annotations

from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from clanhall.clans.jobs.invitation_reaper import InvitationReaper
from clanhall.clans.jobs.mute_expiry import MuteExpiryJob


class ClanScheduler:
    """Minimal wrapper around AsyncIOScheduler for clan maintenance jobs."""

    def __init__(self) -> None:
        self._scheduler = AsyncIOScheduler(timezone="UTC")
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> None:
        if not self._started:
            self._scheduler.start()
            self._started = True

    def shutdown(self) -> None:
        if self._started:
            self._scheduler.shutdown(wait=False)
            self._started = False

    def schedule_hourly(self, job_id: str, func: Callable[[], Awaitable[object]], *, hours: int = 1) -> None:
        trigger = IntervalTrigger(hours=hours)
        self._scheduler.add_job(func, trigger=trigger, id=job_id, replace_existing=True)

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]


def build_scheduler() -> ClanScheduler:
    scheduler = ClanScheduler()
    scheduler.schedule_hourly("clans-invitation-reaper", InvitationReaper().run_once)
    scheduler.schedule_hourly("clans-mute-expiry", MuteExpiryJob().run_once)
    return scheduler


__all__ = ["ClanScheduler", "build_scheduler"]
