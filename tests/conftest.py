"""Shared fixtures: in-memory database, seeded catalog, deterministic clock."""

from datetime import date, datetime, timedelta

import pytest

from lesson_progress.progress.coordinator import ProgressCoordinator
from lesson_progress.progress.plan_sync import PlanSynchronizer
from lesson_progress.progress.reporter import ProgressReporter
from lesson_progress.storage.catalog import SqlCatalog
from lesson_progress.storage.database import Database
from lesson_progress.storage.plan_store import PlanStore
from lesson_progress.storage.progress_store import ProgressStore
from lesson_progress.storage.tables import DailyPlanEntryRow, DailyPlanRow

CATALOG = [
    {
        "id": "lvl-a1",
        "name": "A1",
        "order": 1,
        "stories": [
            {
                "id": "story-cafe",
                "title": "At the Cafe",
                "order": 1,
                "units": [
                    {
                        "id": "unit-order",
                        "title": "Ordering",
                        "order": 1,
                        "assets": [
                            {"id": "asset-video", "type": "video",
                             "storage_key": "cafe/order.mp4", "duration": 120},
                            {"id": "asset-audio", "type": "audio",
                             "storage_key": "cafe/order.mp3", "duration": 60},
                        ],
                    },
                    {
                        "id": "unit-pay",
                        "title": "Paying",
                        "order": 2,
                        "assets": [
                            {"id": "asset-pay-shot", "type": "screenshot",
                             "storage_key": "cafe/pay.png"},
                        ],
                    },
                    {"id": "unit-chat", "title": "Small talk", "order": 3, "assets": []},
                ],
            },
            {"id": "story-empty", "title": "Coming soon", "order": 2, "units": []},
        ],
    },
    {
        "id": "lvl-a2",
        "name": "A2",
        "order": 2,
        "stories": [
            {
                "id": "story-trip",
                "title": "Train Trip",
                "order": 1,
                "units": [
                    {
                        "id": "unit-ticket",
                        "title": "Tickets",
                        "order": 1,
                        "assets": [
                            {"id": "asset-ticket", "type": "video",
                             "storage_key": "trip/ticket.mp4", "duration": 90},
                        ],
                    },
                ],
            },
        ],
    },
]


class FakeClock:
    """Advances one second on every call so timestamps are distinct and ordered."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 9, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def catalog(db):
    sql_catalog = SqlCatalog(db)
    sql_catalog.load(CATALOG)
    return sql_catalog


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(db):
    return ProgressStore(db)


@pytest.fixture
def plan_store(db):
    return PlanStore(db)


@pytest.fixture
def plan_sync(plan_store, clock):
    return PlanSynchronizer(plan_store, clock=clock)


@pytest.fixture
def coordinator(store, catalog, plan_sync, clock):
    return ProgressCoordinator(store, catalog, plan_sync, clock=clock)


@pytest.fixture
def reporter(store, catalog):
    return ProgressReporter(store, catalog)


@pytest.fixture
def add_plan(db):
    """Insert a scheduler-owned daily plan; returns the entry ids."""

    def _add_plan(
        learner_id: str,
        planned_date: date,
        unit_ids: list[str],
        completed: bool = False,
        score: int = 0,
    ) -> list[int]:
        with db.session() as session:
            plan = DailyPlanRow(learner_id=learner_id, planned_date=planned_date)
            session.add(plan)
            session.flush()
            entries = [
                DailyPlanEntryRow(
                    daily_plan_id=plan.id, unit_id=unit_id, completed=completed, score=score
                )
                for unit_id in unit_ids
            ]
            session.add_all(entries)
            session.flush()
            return [e.id for e in entries]

    return _add_plan


@pytest.fixture
def plan_entries(db):
    """Read back every plan entry as (learner_id, unit_id, completed, score) keyed by id."""

    def _plan_entries() -> dict[int, tuple[str, str, bool, int]]:
        with db.session() as session:
            rows = session.query(DailyPlanEntryRow, DailyPlanRow).join(
                DailyPlanRow, DailyPlanEntryRow.daily_plan_id == DailyPlanRow.id
            ).all()
            return {
                entry.id: (plan.learner_id, entry.unit_id, entry.completed, entry.score)
                for entry, plan in rows
            }

    return _plan_entries
