"""Purge worker tasks."""

from __future__ import annotations

from workers.purge_worker.worker import (
    PurgeRunResult,
    PurgeWorkerSettings,
    load_settings,
    run_purge_with_retries,
)


def purge_tick(settings: PurgeWorkerSettings | None = None) -> PurgeRunResult:
    """Run a single retention pass, for cron-style scheduling."""
    resolved_settings = settings or load_settings()
    return run_purge_with_retries(resolved_settings)
