"""Progress coordinator: sanitizes updates, writes progress, completes units."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from lesson_progress.errors import store_errors
from lesson_progress.models.progress import (
    AssetProgress,
    AttemptResult,
    CompletionResult,
    UnitProgress,
)
from lesson_progress.progress import sanitize, scoring
from lesson_progress.progress.plan_sync import PlanSynchronizer
from lesson_progress.storage.catalog import Catalog
from lesson_progress.storage.progress_store import ProgressStore

logger = structlog.get_logger()

DEFAULT_COMPLETION_THRESHOLD = 90.0


class ProgressCoordinator:
    """Entry point for every progress write.

    Each write first makes sure the unit is started. Completion writes the
    asset rows, then the unit row, then the daily plan, so a failed call can
    simply be retried.

    Args:
        store: Progress store.
        catalog: Read-only curriculum catalog.
        plan_sync: Daily plan synchronizer run after completion.
        completion_threshold: Progress percentage at which an asset counts as completed.
        clock: Returns the current time.
    """

    def __init__(
        self,
        store: ProgressStore,
        catalog: Catalog,
        plan_sync: PlanSynchronizer,
        completion_threshold: float = DEFAULT_COMPLETION_THRESHOLD,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.catalog = catalog
        self.plan_sync = plan_sync
        self.completion_threshold = completion_threshold
        self.clock = clock

    def start_unit(self, learner_id: str, unit_id: str) -> UnitProgress:
        """Create the unit record, or set its start time if unset."""
        sanitize.require_id(learner_id, "learner_id")
        sanitize.require_id(unit_id, "unit_id")
        now = self.clock()
        with store_errors("start unit"):
            progress = self.store.ensure_started(learner_id, unit_id, now)
        if progress.started_at == now:
            logger.info("unit_started", learner_id=learner_id, unit_id=unit_id)
        return progress

    def update_asset_progress(
        self,
        learner_id: str,
        unit_id: str,
        asset_id: str,
        seconds_watched: Any,
        progress_percentage: Any,
        duration_seconds: Any = None,
        completed: bool | None = None,
    ) -> AssetProgress:
        """Record media consumption for one asset.

        Args:
            seconds_watched: Floored to a non-negative integer.
            progress_percentage: Clamped to [0, 100].
            duration_seconds: Optional; floored to a non-negative integer.
            completed: Explicit completion flag. When None, the asset is
                completed once progress reaches the completion threshold.
        """
        sanitize.require_id(asset_id, "asset_id")
        seconds = sanitize.non_negative_int(seconds_watched, "seconds_watched")
        percentage = sanitize.percentage(progress_percentage, "progress_percentage")
        duration = (
            sanitize.non_negative_int(duration_seconds, "duration_seconds")
            if duration_seconds is not None
            else None
        )
        is_completed = completed if completed is not None else percentage >= self.completion_threshold

        self.start_unit(learner_id, unit_id)
        now = self.clock()
        with store_errors("update asset progress"):
            progress = self.store.upsert_asset_progress(
                learner_id,
                unit_id,
                asset_id,
                seconds_watched=seconds,
                progress_percentage=percentage,
                duration_seconds=duration,
                completed=bool(is_completed),
                now=now,
            )

        if progress.completed_at == now:
            logger.info(
                "asset_completed", learner_id=learner_id, unit_id=unit_id, asset_id=asset_id
            )
        else:
            logger.debug(
                "asset_progress_updated",
                learner_id=learner_id,
                asset_id=asset_id,
                progress_percentage=percentage,
            )
        return progress

    def record_pronunciation_attempt(
        self,
        learner_id: str,
        unit_id: str,
        audio_key: str,
        score: Any,
        feedback: str | None = None,
    ) -> AttemptResult:
        """Append an attempt and return the unit's recomputed average and count."""
        sanitize.require_id(audio_key, "audio_key")
        clamped = sanitize.attempt_score(score)

        self.start_unit(learner_id, unit_id)
        with store_errors("record pronunciation attempt"):
            attempt = self.store.append_attempt(
                learner_id, unit_id, audio_key, clamped, feedback or None, self.clock()
            )
            # Recomputed from the full log, never kept as a running counter
            scores = self.store.attempt_scores(learner_id, unit_id)

        result = AttemptResult(
            attempt=attempt,
            average_score=scoring.mean(scores),
            attempt_count=len(scores),
        )
        logger.info(
            "pronunciation_attempt_recorded",
            learner_id=learner_id,
            unit_id=unit_id,
            score=clamped,
            attempt_count=result.attempt_count,
        )
        return result

    def calculate_unit_score(self, learner_id: str, unit_id: str) -> int:
        """Derive the unit score from stored progress. Reads only."""
        sanitize.require_id(learner_id, "learner_id")
        sanitize.require_id(unit_id, "unit_id")
        with store_errors("calculate unit score"):
            asset_ids = [a.id for a in self.catalog.unit_assets(unit_id)]
            progress = self.store.asset_progress_by_asset(learner_id, asset_ids)
            attempt_scores = self.store.attempt_scores(learner_id, unit_id)

        return scoring.unit_score(
            asset_ids,
            {asset_id: p.progress_percentage for asset_id, p in progress.items()},
            attempt_scores,
        )

    def complete_unit(
        self,
        learner_id: str,
        unit_id: str,
        final_score: Any = None,
    ) -> CompletionResult:
        """Force-complete the unit's assets, persist the score, sync the plan.

        Args:
            final_score: Overrides the computed score when given; clamped and
                rounded to [0, 100].
        """
        override = sanitize.final_score(final_score) if final_score is not None else None

        self.start_unit(learner_id, unit_id)
        now = self.clock()
        with store_errors("complete unit"):
            assets = self.catalog.unit_assets(unit_id)
            filled = self.store.force_complete_assets(learner_id, unit_id, assets, now)

        score = override if override is not None else self.calculate_unit_score(learner_id, unit_id)

        with store_errors("complete unit"):
            progress = self.store.mark_unit_completed(learner_id, unit_id, score, now)

        plan_updated = self.plan_sync.sync_completion(learner_id, unit_id, score)
        logger.info(
            "unit_completed",
            learner_id=learner_id,
            unit_id=unit_id,
            score=score,
            overridden=override is not None,
            assets_filled=filled,
            plan_updated=plan_updated,
        )
        return CompletionResult(progress=progress, plan_updated=plan_updated)
