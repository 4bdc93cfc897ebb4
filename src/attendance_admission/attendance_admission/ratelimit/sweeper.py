"""Periodic eviction of stale rate-limit windows."""
from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..core.constants import DEFAULT_SWEEP_SECONDS
from ..core.exceptions import CollaboratorUnavailable
from .governor import RateGovernor

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "rate_limit_sweep"


def run_sweep(governor: RateGovernor) -> int:
    """One sweep pass; a database outage is logged and retried on the next tick."""
    try:
        return governor.sweep()
    except CollaboratorUnavailable:
        logger.error("rate-limit sweep skipped: counter store unavailable", exc_info=True)
        return 0


def start_sweeper(
    governor: RateGovernor,
    *,
    interval_seconds: int = DEFAULT_SWEEP_SECONDS,
    scheduler: Optional[BackgroundScheduler] = None,
) -> BackgroundScheduler:
    scheduler = scheduler or BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_sweep,
        "interval",
        seconds=max(1, int(interval_seconds)),
        args=[governor],
        id=SWEEP_JOB_ID,
        name="Rate limit window sweep",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.start()
    logger.info("rate-limit sweeper started (every %ss)", interval_seconds)
    return scheduler


def stop_sweeper(scheduler: Optional[BackgroundScheduler]) -> None:
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("rate-limit sweeper stopped")
