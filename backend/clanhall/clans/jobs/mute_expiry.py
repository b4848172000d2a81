"""Background job clearing mutes whose duration has elapsed."""

from __future__ import annotations

from datetime import datetime, timezone

from clanhall.clans.domain import repo as repo_module
from clanhall.obs import metrics as obs_metrics

_JOB_NAME = "clans-mute-expiry"


class MuteExpiryJob:
	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def run_once(self) -> int:
		started = datetime.now(timezone.utc)
		try:
			cleared = await self.repo.clear_expired_mutes(now=started)
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="success").inc()
			return cleared
		except Exception:
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="error").inc()
			raise
		finally:
			duration = (datetime.now(timezone.utc) - started).total_seconds()
			obs_metrics.BACKGROUND_DURATION.labels(name=_JOB_NAME).observe(duration)
