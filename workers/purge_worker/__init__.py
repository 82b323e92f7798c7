"""Purge worker module exports."""

from .worker import (
    PurgeRunResult,
    PurgeWorkerSettings,
    load_settings,
    run_purge_once,
    run_purge_with_retries,
    run_forever,
)

__all__ = [
    "PurgeRunResult",
    "PurgeWorkerSettings",
    "load_settings",
    "run_purge_once",
    "run_purge_with_retries",
    "run_forever",
]
