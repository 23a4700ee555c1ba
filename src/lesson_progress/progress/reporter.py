"""Read-only progress rollups per unit, per story and per learner."""

import structlog

from lesson_progress.errors import NotFoundError, store_errors
from lesson_progress.models.catalog import CatalogAsset
from lesson_progress.models.progress import AssetProgress
from lesson_progress.models.reports import (
    AssetInfo,
    AssetProgressDetail,
    PronunciationHistory,
    StoryProgress,
    StoryRollup,
    StoryUnitProgress,
    UnitProgressReport,
    UserProgressSummary,
)
from lesson_progress.progress import sanitize, scoring
from lesson_progress.storage.catalog import Catalog
from lesson_progress.storage.progress_store import ProgressStore

logger = structlog.get_logger()

DEFAULT_RECENT_ACTIVITY_LIMIT = 10


def _with_asset(progress: AssetProgress, assets: dict[str, CatalogAsset]) -> AssetProgressDetail:
    asset = assets.get(progress.asset_id)
    info = (
        AssetInfo(id=asset.id, type=asset.type, storage_key=asset.storage_key, duration=asset.duration)
        if asset
        else None
    )
    return AssetProgressDetail(**progress.model_dump(), asset=info)


def _average_completed_score(scores: list[int]) -> int:
    return scoring.round_half_up(scoring.mean(scores)) if scores else 0


class ProgressReporter:
    """Builds reports straight from the store and catalog; never writes.

    Args:
        store: Progress store.
        catalog: Read-only curriculum catalog.
        recent_activity_limit: Number of unit rows in a summary's recent activity.
    """

    def __init__(
        self,
        store: ProgressStore,
        catalog: Catalog,
        recent_activity_limit: int = DEFAULT_RECENT_ACTIVITY_LIMIT,
    ):
        self.store = store
        self.catalog = catalog
        self.recent_activity_limit = recent_activity_limit

    def _asset_details(self, learner_id: str, unit_id: str) -> list[AssetProgressDetail]:
        assets = {a.id: a for a in self.catalog.unit_assets(unit_id)}
        return [_with_asset(p, assets) for p in self.store.list_asset_progress(learner_id, unit_id)]

    def get_unit_progress(self, learner_id: str, unit_id: str) -> UnitProgressReport:
        """Unit row (None if never started), attempts newest first, asset rows."""
        sanitize.require_id(learner_id, "learner_id")
        sanitize.require_id(unit_id, "unit_id")
        with store_errors("get unit progress"):
            return UnitProgressReport(
                progress=self.store.get_unit_progress(learner_id, unit_id),
                pronunciation_attempts=self.store.list_attempts(learner_id, unit_id),
                asset_progress=self._asset_details(learner_id, unit_id),
            )

    def get_pronunciation_attempts(self, learner_id: str, unit_id: str) -> PronunciationHistory:
        sanitize.require_id(learner_id, "learner_id")
        sanitize.require_id(unit_id, "unit_id")
        with store_errors("get pronunciation attempts"):
            attempts = self.store.list_attempts(learner_id, unit_id)
        return PronunciationHistory(
            attempts=attempts,
            average_score=scoring.mean(a.score for a in attempts),
            count=len(attempts),
        )

    def get_asset_progress(self, learner_id: str, unit_id: str) -> list[AssetProgressDetail]:
        sanitize.require_id(learner_id, "learner_id")
        sanitize.require_id(unit_id, "unit_id")
        with store_errors("get asset progress"):
            return self._asset_details(learner_id, unit_id)

    def get_user_progress_summary(self, learner_id: str) -> UserProgressSummary:
        """Totals, averages, recent activity and per-story rollups for a learner.

        In-progress means started but not completed. Story rollups only cover
        units the learner has touched.
        """
        sanitize.require_id(learner_id, "learner_id")
        with store_errors("get user progress summary"):
            all_progress = self.store.list_unit_progress(learner_id)
            attempt_scores = self.store.attempt_scores(learner_id)
            units = self.catalog.units_by_id(p.unit_id for p in all_progress)

        completed = [p for p in all_progress if p.completed]

        # dicts keep insertion order, so stories follow recent activity
        rollups: dict[str, StoryRollup] = {}
        completed_scores: dict[str, list[int]] = {}
        for progress in all_progress:
            unit = units.get(progress.unit_id)
            if unit is None:
                logger.warning(
                    "summary_unit_missing_from_catalog",
                    learner_id=learner_id,
                    unit_id=progress.unit_id,
                )
                continue
            rollup = rollups.setdefault(
                unit.story_id,
                StoryRollup(
                    story_id=unit.story_id,
                    story_title=unit.story_title,
                    level_name=unit.level_name,
                ),
            )
            rollup.total_units += 1
            if progress.completed:
                rollup.completed_units += 1
                completed_scores.setdefault(unit.story_id, []).append(progress.score)

        for story_id, rollup in rollups.items():
            rollup.average_score = _average_completed_score(completed_scores.get(story_id, []))

        return UserProgressSummary(
            learner_id=learner_id,
            total_units=len(all_progress),
            completed_units=len(completed),
            in_progress_units=sum(
                1 for p in all_progress if p.started_at is not None and not p.completed
            ),
            average_score=_average_completed_score([p.score for p in completed]),
            total_pronunciation_attempts=len(attempt_scores),
            average_pronunciation_score=scoring.mean(attempt_scores),
            recent_activity=all_progress[: self.recent_activity_limit],
            stories=list(rollups.values()),
        )

    def get_story_progress(self, learner_id: str, story_id: str) -> StoryProgress:
        """Every catalog unit of a story in order, touched or not.

        Raises:
            NotFoundError: The story has no catalog units.
        """
        sanitize.require_id(learner_id, "learner_id")
        sanitize.require_id(story_id, "story_id")
        with store_errors("get story progress"):
            units = self.catalog.story_units(story_id)
            if not units:
                raise NotFoundError(f"Story {story_id} not found or has no units")

            rows = []
            for unit in units:
                progress = self.store.get_unit_progress(learner_id, unit.id)
                scores = self.store.attempt_scores(learner_id, unit.id)
                rows.append(StoryUnitProgress(
                    unit_id=unit.id,
                    unit_title=unit.title,
                    story_id=unit.story_id,
                    story_title=unit.story_title,
                    completed=progress.completed if progress else False,
                    score=progress.score if progress else 0,
                    started_at=progress.started_at if progress else None,
                    completed_at=progress.completed_at if progress else None,
                    pronunciation_attempts=len(scores),
                    average_pronunciation_score=scoring.mean(scores),
                ))

        completed_scores = [u.score for u in rows if u.completed]
        return StoryProgress(
            story_id=story_id,
            story_title=units[0].story_title,
            level_name=units[0].level_name,
            total_units=len(units),
            completed_units=len(completed_scores),
            average_score=_average_completed_score(completed_scores),
            units=rows,
        )
