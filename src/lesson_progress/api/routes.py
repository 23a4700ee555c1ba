"""REST API routes for learner progress.

Catalog existence is checked here before calling into the core.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from lesson_progress.api.dependencies import (
    get_catalog,
    get_coordinator,
    get_learner_id,
    get_reporter,
)
from lesson_progress.errors import NotFoundError, StoreError, ValidationError
from lesson_progress.progress import sanitize
from lesson_progress.progress.coordinator import ProgressCoordinator
from lesson_progress.progress.reporter import ProgressReporter
from lesson_progress.storage.catalog import SqlCatalog

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class AssetProgressBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    seconds_watched: Any = Field(default=None, alias="secondsWatched")
    progress_percentage: Any = Field(default=None, alias="progressPercentage")
    duration_seconds: Any = Field(default=None, alias="durationSeconds")
    completed: bool | None = None


class PronunciationBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_key: str | None = Field(default=None, alias="audioKey")
    score: Any = None
    feedback: str | None = None


class CompleteBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    final_score: Any = Field(default=None, alias="finalScore")


def _require_unit(catalog: SqlCatalog, unit_id: str) -> None:
    if catalog.get_unit(unit_id) is None:
        raise NotFoundError("Unit not found")


def _check_range(value: Any, label: str) -> None:
    number = sanitize.require_number(value, label)
    if number < 0 or number > 100:
        raise ValidationError(f"{label} must be between 0 and 100")


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.post("/progress/units/{unit_id}/start")
def start_unit(
    unit_id: str,
    learner_id: str = Depends(get_learner_id),
    catalog: SqlCatalog = Depends(get_catalog),
    coordinator: ProgressCoordinator = Depends(get_coordinator),
) -> dict:
    _require_unit(catalog, unit_id)
    progress = coordinator.start_unit(learner_id, unit_id)
    return {"progress": progress.model_dump(mode="json")}


@router.post("/progress/assets/{asset_id}/update")
def update_asset_progress(
    asset_id: str,
    body: AssetProgressBody,
    learner_id: str = Depends(get_learner_id),
    catalog: SqlCatalog = Depends(get_catalog),
    coordinator: ProgressCoordinator = Depends(get_coordinator),
) -> dict:
    if body.seconds_watched is None or body.progress_percentage is None:
        raise ValidationError("Missing required fields: secondsWatched, progressPercentage")
    asset = catalog.get_asset(asset_id)
    if asset is None:
        raise NotFoundError("Asset not found")
    progress = coordinator.update_asset_progress(
        learner_id,
        asset.unit_id,
        asset_id,
        seconds_watched=body.seconds_watched,
        progress_percentage=body.progress_percentage,
        duration_seconds=body.duration_seconds,
        completed=body.completed,
    )
    return {"asset_progress": progress.model_dump(mode="json")}


@router.post("/progress/units/{unit_id}/pronunciation", status_code=201)
def record_pronunciation_attempt(
    unit_id: str,
    body: PronunciationBody,
    learner_id: str = Depends(get_learner_id),
    catalog: SqlCatalog = Depends(get_catalog),
    coordinator: ProgressCoordinator = Depends(get_coordinator),
) -> dict:
    if not body.audio_key or body.score is None:
        raise ValidationError("Missing required fields: audioKey, score")
    _check_range(body.score, "Score")
    _require_unit(catalog, unit_id)
    result = coordinator.record_pronunciation_attempt(
        learner_id, unit_id, body.audio_key, body.score, body.feedback
    )
    return result.model_dump(mode="json")


@router.post("/progress/units/{unit_id}/complete")
def complete_unit(
    unit_id: str,
    body: CompleteBody | None = None,
    learner_id: str = Depends(get_learner_id),
    catalog: SqlCatalog = Depends(get_catalog),
    coordinator: ProgressCoordinator = Depends(get_coordinator),
) -> dict:
    final_score = body.final_score if body else None
    if final_score is not None:
        _check_range(final_score, "Final score")
    _require_unit(catalog, unit_id)
    result = coordinator.complete_unit(learner_id, unit_id, final_score)
    return {
        "progress": result.progress.model_dump(mode="json"),
        "daily_plan_updated": result.plan_updated,
    }


@router.get("/progress/units/{unit_id}")
def get_unit_progress(
    unit_id: str,
    learner_id: str = Depends(get_learner_id),
    catalog: SqlCatalog = Depends(get_catalog),
    reporter: ProgressReporter = Depends(get_reporter),
) -> dict:
    _require_unit(catalog, unit_id)
    return reporter.get_unit_progress(learner_id, unit_id).model_dump(mode="json")


@router.get("/progress/units/{unit_id}/pronunciation")
def get_pronunciation_attempts(
    unit_id: str,
    learner_id: str = Depends(get_learner_id),
    catalog: SqlCatalog = Depends(get_catalog),
    reporter: ProgressReporter = Depends(get_reporter),
) -> dict:
    _require_unit(catalog, unit_id)
    return reporter.get_pronunciation_attempts(learner_id, unit_id).model_dump(mode="json")


@router.get("/progress/units/{unit_id}/assets")
def get_asset_progress(
    unit_id: str,
    learner_id: str = Depends(get_learner_id),
    catalog: SqlCatalog = Depends(get_catalog),
    reporter: ProgressReporter = Depends(get_reporter),
) -> dict:
    _require_unit(catalog, unit_id)
    details = reporter.get_asset_progress(learner_id, unit_id)
    return {"asset_progress": [d.model_dump(mode="json") for d in details]}


@router.get("/progress/summary")
def get_progress_summary(
    learner_id: str = Depends(get_learner_id),
    reporter: ProgressReporter = Depends(get_reporter),
) -> dict:
    return reporter.get_user_progress_summary(learner_id).model_dump(mode="json")


@router.get("/progress/stories/{story_id}")
def get_story_progress(
    story_id: str,
    learner_id: str = Depends(get_learner_id),
    catalog: SqlCatalog = Depends(get_catalog),
    reporter: ProgressReporter = Depends(get_reporter),
) -> dict:
    if catalog.get_story(story_id) is None:
        raise NotFoundError("Story not found")
    return reporter.get_story_progress(learner_id, story_id).model_dump(mode="json")


def register_exception_handlers(app: FastAPI) -> None:
    """Map core failure kinds onto HTTP status codes."""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=404)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("request_store_failure", path=request.url.path, operation=exc.operation)
        return JSONResponse({"error": str(exc)}, status_code=500)
