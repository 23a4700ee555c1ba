"""Propagates unit completion into the learner's daily plan."""

from collections.abc import Callable
from datetime import datetime

import structlog

from lesson_progress.errors import store_errors
from lesson_progress.storage.plan_store import PlanStore

logger = structlog.get_logger()


class PlanSynchronizer:
    """Marks existing plan entries for a completed unit.

    Args:
        plans: Plan entry store.
        clock: Returns the current time.
    """

    def __init__(self, plans: PlanStore, clock: Callable[[], datetime] = datetime.now):
        self.plans = plans
        self.clock = clock

    def sync_completion(self, learner_id: str, unit_id: str, score: int) -> bool:
        """Set completed/score on every plan entry for this learner and unit.

        Returns:
            True if at least one entry exists, whether or not it changed.
        """
        with store_errors("sync daily plan"):
            entries = self.plans.entries_for_unit(learner_id, unit_id)
            stale = [e.id for e in entries if not e.completed or e.score != score]
            if stale:
                self.plans.mark_completed(stale, score, self.clock())
                logger.info(
                    "plan_entries_synced",
                    learner_id=learner_id,
                    unit_id=unit_id,
                    score=score,
                    updated=len(stale),
                    total=len(entries),
                )
        return bool(entries)
