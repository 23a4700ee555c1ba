"""Tests for the read-only progress reports."""

import pytest

from lesson_progress.errors import NotFoundError
from lesson_progress.progress.reporter import ProgressReporter

LEARNER = "learner-1"
OTHER_LEARNER = "learner-2"


@pytest.fixture
def activity(coordinator):
    """A learner with one completed unit per story and one unit in progress."""
    coordinator.record_pronunciation_attempt(LEARNER, "unit-order", "rec/1.webm", 80)
    coordinator.record_pronunciation_attempt(LEARNER, "unit-order", "rec/2.webm", 90)
    coordinator.start_unit(LEARNER, "unit-pay")
    coordinator.complete_unit(LEARNER, "unit-order", final_score=80)
    coordinator.complete_unit(LEARNER, "unit-ticket", final_score=91)
    return coordinator


class TestUnitProgressReport:
    def test_never_started(self, reporter):
        report = reporter.get_unit_progress(LEARNER, "unit-order")
        assert report.progress is None
        assert report.pronunciation_attempts == []
        assert report.asset_progress == []

    def test_attempts_newest_first(self, reporter, coordinator):
        first = coordinator.record_pronunciation_attempt(LEARNER, "unit-order", "rec/1.webm", 70)
        second = coordinator.record_pronunciation_attempt(LEARNER, "unit-order", "rec/2.webm", 75)
        report = reporter.get_unit_progress(LEARNER, "unit-order")
        assert [a.id for a in report.pronunciation_attempts] == [second.attempt.id, first.attempt.id]

    def test_asset_rows_joined_with_catalog(self, reporter, coordinator):
        coordinator.update_asset_progress(LEARNER, "unit-order", "asset-video", 30, 25)
        report = reporter.get_unit_progress(LEARNER, "unit-order")
        assert report.progress is not None
        assert len(report.asset_progress) == 1
        detail = report.asset_progress[0]
        assert detail.asset_id == "asset-video"
        assert detail.asset.type == "video"
        assert detail.asset.storage_key == "cafe/order.mp4"


class TestPronunciationHistory:
    def test_empty(self, reporter):
        history = reporter.get_pronunciation_attempts(LEARNER, "unit-order")
        assert history.count == 0
        assert history.average_score == 0.0

    def test_average(self, reporter, activity):
        history = reporter.get_pronunciation_attempts(LEARNER, "unit-order")
        assert history.count == 2
        assert history.average_score == pytest.approx(85.0)


class TestAssetProgressReport:
    def test_creation_order_with_duration(self, reporter, coordinator):
        coordinator.update_asset_progress(LEARNER, "unit-order", "asset-audio", 10, 10)
        coordinator.update_asset_progress(LEARNER, "unit-order", "asset-video", 10, 10)
        details = reporter.get_asset_progress(LEARNER, "unit-order")
        assert [d.asset_id for d in details] == ["asset-audio", "asset-video"]
        assert details[0].asset.duration == 60


class TestUserProgressSummary:
    def test_empty_learner(self, reporter):
        summary = reporter.get_user_progress_summary(LEARNER)
        assert summary.total_units == 0
        assert summary.average_score == 0
        assert summary.average_pronunciation_score == 0.0
        assert summary.recent_activity == []
        assert summary.stories == []

    def test_totals(self, reporter, activity):
        summary = reporter.get_user_progress_summary(LEARNER)
        assert summary.learner_id == LEARNER
        assert summary.total_units == 3
        assert summary.completed_units == 2
        assert summary.in_progress_units == 1
        # (80 + 91) / 2 = 85.5 rounds half up
        assert summary.average_score == 86
        assert summary.total_pronunciation_attempts == 2
        assert summary.average_pronunciation_score == pytest.approx(85.0)

    def test_recent_activity_order(self, reporter, activity):
        summary = reporter.get_user_progress_summary(LEARNER)
        assert [p.unit_id for p in summary.recent_activity] == [
            "unit-ticket",
            "unit-order",
            "unit-pay",
        ]

    def test_recent_activity_limit(self, store, catalog, activity):
        reporter = ProgressReporter(store, catalog, recent_activity_limit=2)
        summary = reporter.get_user_progress_summary(LEARNER)
        assert len(summary.recent_activity) == 2
        assert summary.total_units == 3

    def test_story_rollups(self, reporter, activity):
        stories = {s.story_id: s for s in reporter.get_user_progress_summary(LEARNER).stories}
        assert set(stories) == {"story-cafe", "story-trip"}
        cafe = stories["story-cafe"]
        assert cafe.story_title == "At the Cafe"
        assert cafe.level_name == "A1"
        assert cafe.total_units == 2
        assert cafe.completed_units == 1
        assert cafe.average_score == 80
        trip = stories["story-trip"]
        assert trip.level_name == "A2"
        assert (trip.total_units, trip.completed_units, trip.average_score) == (1, 1, 91)

    def test_zero_score_completion_counts_as_completed(self, reporter, coordinator):
        coordinator.complete_unit(LEARNER, "unit-chat", final_score=0)
        summary = reporter.get_user_progress_summary(LEARNER)
        assert summary.completed_units == 1
        assert summary.in_progress_units == 0
        assert summary.average_score == 0

    def test_isolated_per_learner(self, reporter, activity):
        summary = reporter.get_user_progress_summary(OTHER_LEARNER)
        assert summary.total_units == 0
        assert summary.total_pronunciation_attempts == 0


class TestStoryProgress:
    def test_includes_untouched_units_in_order(self, reporter, activity):
        story = reporter.get_story_progress(LEARNER, "story-cafe")
        assert [u.unit_id for u in story.units] == ["unit-order", "unit-pay", "unit-chat"]
        order, pay, chat = story.units
        assert order.completed is True
        assert order.score == 80
        assert order.pronunciation_attempts == 2
        assert order.average_pronunciation_score == pytest.approx(85.0)
        assert pay.completed is False
        assert pay.started_at is not None
        assert chat.completed is False
        assert chat.score == 0
        assert chat.started_at is None
        assert chat.completed_at is None
        assert chat.pronunciation_attempts == 0

    def test_story_totals(self, reporter, activity):
        story = reporter.get_story_progress(LEARNER, "story-cafe")
        assert story.story_title == "At the Cafe"
        assert story.level_name == "A1"
        assert story.total_units == 3
        assert story.completed_units == 1
        assert story.average_score == 80

    def test_untouched_story(self, reporter):
        story = reporter.get_story_progress(LEARNER, "story-trip")
        assert story.completed_units == 0
        assert story.average_score == 0
        assert story.units[0].unit_title == "Tickets"

    @pytest.mark.parametrize("story_id", ["story-empty", "story-missing"])
    def test_no_units_is_not_found(self, reporter, story_id):
        with pytest.raises(NotFoundError):
            reporter.get_story_progress(LEARNER, story_id)
