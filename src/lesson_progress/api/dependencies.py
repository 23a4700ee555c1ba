"""FastAPI dependency wiring for the progress services."""

import functools
from pathlib import Path

from fastapi import Depends, Header, HTTPException
from sqlalchemy.engine import make_url

from lesson_progress.config import get_settings
from lesson_progress.progress.coordinator import ProgressCoordinator
from lesson_progress.progress.plan_sync import PlanSynchronizer
from lesson_progress.progress.reporter import ProgressReporter
from lesson_progress.storage.catalog import SqlCatalog
from lesson_progress.storage.database import Database
from lesson_progress.storage.plan_store import PlanStore
from lesson_progress.storage.progress_store import ProgressStore


@functools.lru_cache
def get_database() -> Database:
    """Shared database for the process."""
    settings = get_settings()
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return Database(settings.database_url, echo=settings.database_echo)


def get_catalog(db: Database = Depends(get_database)) -> SqlCatalog:
    return SqlCatalog(db)


def get_coordinator(
    db: Database = Depends(get_database),
    catalog: SqlCatalog = Depends(get_catalog),
) -> ProgressCoordinator:
    settings = get_settings()
    return ProgressCoordinator(
        store=ProgressStore(db),
        catalog=catalog,
        plan_sync=PlanSynchronizer(PlanStore(db)),
        completion_threshold=settings.asset_completion_threshold,
    )


def get_reporter(
    db: Database = Depends(get_database),
    catalog: SqlCatalog = Depends(get_catalog),
) -> ProgressReporter:
    settings = get_settings()
    return ProgressReporter(
        store=ProgressStore(db),
        catalog=catalog,
        recent_activity_limit=settings.recent_activity_limit,
    )


def get_learner_id(x_learner_id: str | None = Header(default=None)) -> str:
    """Learner identity as already validated by the identity provider."""
    if not x_learner_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_learner_id
