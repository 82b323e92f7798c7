"""Retention worker that purges settled webhook deliveries."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reviewplates.auth.access import RETENTION_CAPABILITY
from reviewplates.config import settings as app_settings
from reviewplates.db.session import SessionLocal
from reviewplates.observability import configure_logging, log_event
from reviewplates.services.event_ledger import purge_terminal_events


@dataclass(frozen=True)
class PurgeWorkerSettings:
    keep_days: int
    interval_s: int
    max_retries: int
    retry_backoff_s: float


@dataclass(frozen=True)
class PurgeRunResult:
    ok: bool
    purged_count: int
    error: str | None = None
    attempts: int = 1


def load_settings(env: dict[str, str] | None = None) -> PurgeWorkerSettings:
    source = env if env is not None else os.environ
    keep_days = int(
        source.get(
            "REVIEWPLATES_PURGE_WORKER_KEEP_DAYS", str(app_settings.webhook_events_keep_days)
        )
    )
    interval_s = int(
        source.get(
            "REVIEWPLATES_PURGE_WORKER_INTERVAL_S",
            str(app_settings.webhook_events_purge_interval_s),
        )
    )
    max_retries = int(source.get("REVIEWPLATES_PURGE_WORKER_MAX_RETRIES", "2"))
    retry_backoff_s = float(source.get("REVIEWPLATES_PURGE_WORKER_RETRY_BACKOFF_S", "5"))

    if keep_days < 1:
        raise ValueError("REVIEWPLATES_PURGE_WORKER_KEEP_DAYS must be >= 1")
    if interval_s < 1:
        raise ValueError("REVIEWPLATES_PURGE_WORKER_INTERVAL_S must be >= 1")
    if max_retries < 0:
        raise ValueError("REVIEWPLATES_PURGE_WORKER_MAX_RETRIES must be >= 0")
    if retry_backoff_s < 0:
        raise ValueError("REVIEWPLATES_PURGE_WORKER_RETRY_BACKOFF_S must be >= 0")

    return PurgeWorkerSettings(
        keep_days=keep_days,
        interval_s=interval_s,
        max_retries=max_retries,
        retry_backoff_s=retry_backoff_s,
    )


def run_purge_once(
    session_factory: Callable[[], Session],
    keep_days: int,
    now: datetime | None = None,
) -> PurgeRunResult:
    try:
        with session_factory() as db:
            purged = purge_terminal_events(
                db, keep_days=keep_days, capability=RETENTION_CAPABILITY, now=now
            )
    except SQLAlchemyError as exc:
        return PurgeRunResult(ok=False, purged_count=0, error=f"{type(exc).__name__}: {exc}")
    return PurgeRunResult(ok=True, purged_count=purged)


def run_purge_with_retries(
    settings: PurgeWorkerSettings,
    session_factory: Callable[[], Session] = SessionLocal,
    sleep: Callable[[float], None] = time.sleep,
    now: datetime | None = None,
) -> PurgeRunResult:
    for attempts in range(1, settings.max_retries + 2):
        result = run_purge_once(session_factory, settings.keep_days, now=now)
        if result.ok or attempts > settings.max_retries:
            if result.ok:
                log_event("webhook_events_purged", count=result.purged_count)
            else:
                log_event("webhook_events_purge_failed", error=result.error, level=logging.ERROR)
            return PurgeRunResult(
                ok=result.ok,
                purged_count=result.purged_count,
                error=result.error,
                attempts=attempts,
            )

        sleep(settings.retry_backoff_s * (2 ** (attempts - 1)))

    raise RuntimeError("purge retry loop exhausted unexpectedly")


def run_forever(settings: PurgeWorkerSettings) -> None:
    # First pass at boot, then one per interval.
    while True:
        run_purge_with_retries(settings)
        time.sleep(settings.interval_s)


if __name__ == "__main__":
    configure_logging()
    run_forever(load_settings())
