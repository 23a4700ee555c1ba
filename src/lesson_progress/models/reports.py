"""Read-only report models built by the aggregation reporter."""

from datetime import datetime

from pydantic import BaseModel, Field

from lesson_progress.models.progress import AssetProgress, PronunciationAttempt, UnitProgress


class AssetInfo(BaseModel):
    """Minimal catalog metadata joined onto an asset progress row."""

    id: str
    type: str
    storage_key: str
    duration: int | None = None


class AssetProgressDetail(AssetProgress):
    asset: AssetInfo | None = None


class UnitProgressReport(BaseModel):
    progress: UnitProgress | None = None
    pronunciation_attempts: list[PronunciationAttempt] = Field(default_factory=list)
    asset_progress: list[AssetProgressDetail] = Field(default_factory=list)


class PronunciationHistory(BaseModel):
    attempts: list[PronunciationAttempt] = Field(default_factory=list)
    average_score: float = 0.0
    count: int = 0


class StoryRollup(BaseModel):
    """Per-story totals over the units a learner has touched."""

    story_id: str
    story_title: str
    level_name: str
    completed_units: int = 0
    total_units: int = 0
    average_score: int = 0


class UserProgressSummary(BaseModel):
    learner_id: str
    total_units: int = 0
    completed_units: int = 0
    in_progress_units: int = 0
    average_score: int = 0
    total_pronunciation_attempts: int = 0
    average_pronunciation_score: float = 0.0
    recent_activity: list[UnitProgress] = Field(default_factory=list)
    stories: list[StoryRollup] = Field(default_factory=list)


class StoryUnitProgress(BaseModel):
    """One catalog unit of a story, with zero/false/null defaults when untouched."""

    unit_id: str
    unit_title: str
    story_id: str
    story_title: str
    completed: bool = False
    score: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None
    pronunciation_attempts: int = 0
    average_pronunciation_score: float = 0.0


class StoryProgress(BaseModel):
    story_id: str
    story_title: str
    level_name: str
    total_units: int
    completed_units: int
    average_score: int
    units: list[StoryUnitProgress] = Field(default_factory=list)
