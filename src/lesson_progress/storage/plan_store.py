"""Access to daily plan entries owned by the scheduler."""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select, update

from lesson_progress.models.progress import PlanEntry
from lesson_progress.storage.database import Database
from lesson_progress.storage.tables import DailyPlanEntryRow, DailyPlanRow


class PlanStore:
    """Finds and updates plan entries. Never creates or deletes them."""

    def __init__(self, db: Database):
        self.db = db

    def entries_for_unit(self, learner_id: str, unit_id: str) -> list[PlanEntry]:
        """Entries referencing a unit across every plan date of one learner."""
        with self.db.session() as session:
            rows = session.scalars(
                select(DailyPlanEntryRow)
                .join(DailyPlanRow, DailyPlanEntryRow.daily_plan_id == DailyPlanRow.id)
                .where(
                    DailyPlanRow.learner_id == learner_id,
                    DailyPlanEntryRow.unit_id == unit_id,
                )
                .order_by(DailyPlanEntryRow.id)
            ).all()
            return [PlanEntry.model_validate(r) for r in rows]

    def mark_completed(self, entry_ids: Iterable[int], score: int, now: datetime) -> int:
        ids = list(entry_ids)
        if not ids:
            return 0
        with self.db.session() as session:
            result = session.execute(
                update(DailyPlanEntryRow)
                .where(DailyPlanEntryRow.id.in_(ids))
                .values(completed=True, score=score, updated_at=now)
            )
            return result.rowcount
