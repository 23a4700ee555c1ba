"""Progress record models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UnitProgress(BaseModel):
    """Completion record for one (learner, unit) pair."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    learner_id: str
    unit_id: str
    completed: bool = False
    score: int = Field(default=0, ge=0, le=100)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AssetProgress(BaseModel):
    """Consumption record for one (learner, asset) pair.

    Once ``completed_at`` is set, later updates never clear it.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    learner_id: str
    unit_id: str
    asset_id: str
    progress_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    seconds_watched: int = Field(default=0, ge=0)
    duration_seconds: int | None = None
    completed: bool = False
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PronunciationAttempt(BaseModel):
    """A single pre-scored speaking attempt. Immutable once stored."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    learner_id: str
    unit_id: str
    audio_key: str
    score: float = Field(ge=0.0, le=100.0)
    feedback: str | None = None
    created_at: datetime


class PlanEntry(BaseModel):
    """Daily plan entry as seen by the plan synchronizer."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    daily_plan_id: int
    unit_id: str
    completed: bool = False
    score: int = 0


class AttemptResult(BaseModel):
    """Stored attempt plus the unit's recomputed pronunciation average."""

    attempt: PronunciationAttempt
    average_score: float
    attempt_count: int


class CompletionResult(BaseModel):
    progress: UnitProgress
    plan_updated: bool
