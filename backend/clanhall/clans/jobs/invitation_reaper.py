"""Background job marking elapsed pending invitations as expired."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from clanhall.clans.domain import repo as repo_module
from clanhall.obs import metrics as obs_metrics

_LOG = logging.getLogger(__name__)

_JOB_NAME = "clans-invitation-reaper"


class InvitationReaper:
	"""Marks stale pending invitations expired; reads already ignore them."""

	def __init__(self, *, repository: repo_module.ClansRepository | None = None) -> None:
		self.repo = repository or repo_module.ClansRepository()

	async def run_once(self) -> int:
		started = datetime.now(timezone.utc)
		try:
			expired = await self.repo.expire_invitations(now=started)
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="success").inc()
			if expired:
				_LOG.info("clans.jobs.invitations_expired", extra={"count": expired})
			return expired
		except Exception:
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="error").inc()
			raise
		finally:
			duration = (datetime.now(timezone.utc) - started).total_seconds()
			obs_metrics.BACKGROUND_DURATION.labels(name=_JOB_NAME).observe(duration)
