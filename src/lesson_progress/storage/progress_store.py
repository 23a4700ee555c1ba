"""Persistence for unit progress, asset progress and pronunciation attempts.

Lazily-created rows go through a single INSERT ... ON CONFLICT statement on the
row's unique key, so concurrent first writes collapse into one row.
"""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, or_, select

from lesson_progress.models.catalog import CatalogAsset
from lesson_progress.models.progress import AssetProgress, PronunciationAttempt, UnitProgress
from lesson_progress.storage.database import Database
from lesson_progress.storage.tables import (
    AssetProgressRow,
    PronunciationAttemptRow,
    UnitProgressRow,
)

_UNIT_KEY = ["learner_id", "unit_id"]
_ASSET_KEY = ["learner_id", "asset_id"]


class ProgressStore:
    """Row-level access to the progress tables. Holds no business rules."""

    def __init__(self, db: Database):
        self.db = db

    # ---- unit progress ----

    def get_unit_progress(self, learner_id: str, unit_id: str) -> UnitProgress | None:
        with self.db.session() as session:
            row = session.scalar(
                select(UnitProgressRow).where(
                    UnitProgressRow.learner_id == learner_id,
                    UnitProgressRow.unit_id == unit_id,
                )
            )
            return UnitProgress.model_validate(row) if row else None

    def ensure_started(self, learner_id: str, unit_id: str, now: datetime) -> UnitProgress:
        """Create the unit row if absent and set ``started_at`` only if unset."""
        table = UnitProgressRow.__table__
        stmt = self.db.insert(table).values(
            learner_id=learner_id,
            unit_id=unit_id,
            completed=False,
            score=0,
            started_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=_UNIT_KEY,
            set_={"started_at": func.coalesce(table.c.started_at, stmt.excluded.started_at)},
        )
        with self.db.session() as session:
            session.execute(stmt)
        return self.get_unit_progress(learner_id, unit_id)

    def mark_unit_completed(
        self, learner_id: str, unit_id: str, score: int, now: datetime
    ) -> UnitProgress:
        """Persist completion. An existing ``completed_at`` is kept."""
        table = UnitProgressRow.__table__
        stmt = self.db.insert(table).values(
            learner_id=learner_id,
            unit_id=unit_id,
            completed=True,
            score=score,
            started_at=now,
            completed_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=_UNIT_KEY,
            set_={
                "completed": True,
                "score": stmt.excluded.score,
                "started_at": func.coalesce(table.c.started_at, stmt.excluded.started_at),
                "completed_at": func.coalesce(table.c.completed_at, stmt.excluded.completed_at),
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with self.db.session() as session:
            session.execute(stmt)
        return self.get_unit_progress(learner_id, unit_id)

    def list_unit_progress(self, learner_id: str) -> list[UnitProgress]:
        """All unit rows for a learner, most recently updated first."""
        with self.db.session() as session:
            rows = session.scalars(
                select(UnitProgressRow)
                .where(UnitProgressRow.learner_id == learner_id)
                .order_by(UnitProgressRow.updated_at.desc(), UnitProgressRow.id.desc())
            ).all()
            return [UnitProgress.model_validate(r) for r in rows]

    # ---- asset progress ----

    def get_asset_progress(self, learner_id: str, asset_id: str) -> AssetProgress | None:
        with self.db.session() as session:
            row = session.scalar(
                select(AssetProgressRow).where(
                    AssetProgressRow.learner_id == learner_id,
                    AssetProgressRow.asset_id == asset_id,
                )
            )
            return AssetProgress.model_validate(row) if row else None

    def upsert_asset_progress(
        self,
        learner_id: str,
        unit_id: str,
        asset_id: str,
        *,
        seconds_watched: int,
        progress_percentage: float,
        duration_seconds: int | None,
        completed: bool,
        now: datetime,
    ) -> AssetProgress:
        """Write the latest asset state.

        ``completed_at`` is only ever set once; ``duration_seconds`` is only
        replaced when a new value is given.
        """
        table = AssetProgressRow.__table__
        stmt = self.db.insert(table).values(
            learner_id=learner_id,
            unit_id=unit_id,
            asset_id=asset_id,
            seconds_watched=seconds_watched,
            progress_percentage=progress_percentage,
            duration_seconds=duration_seconds,
            completed=completed,
            completed_at=now if completed else None,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=_ASSET_KEY,
            set_={
                "seconds_watched": stmt.excluded.seconds_watched,
                "progress_percentage": stmt.excluded.progress_percentage,
                "duration_seconds": func.coalesce(
                    stmt.excluded.duration_seconds, table.c.duration_seconds
                ),
                "completed": stmt.excluded.completed,
                "completed_at": func.coalesce(table.c.completed_at, stmt.excluded.completed_at),
                "updated_at": stmt.excluded.updated_at,
            },
        )
        with self.db.session() as session:
            session.execute(stmt)
        return self.get_asset_progress(learner_id, asset_id)

    def force_complete_assets(
        self,
        learner_id: str,
        unit_id: str,
        assets: Iterable[CatalogAsset],
        now: datetime,
    ) -> int:
        """Mark every given asset 100% complete in one transaction.

        Rows that are already fully complete are left untouched. Returns the
        number of assets processed.
        """
        table = AssetProgressRow.__table__
        count = 0
        with self.db.session() as session:
            for asset in assets:
                stmt = self.db.insert(table).values(
                    learner_id=learner_id,
                    unit_id=unit_id,
                    asset_id=asset.id,
                    seconds_watched=asset.duration or 0,
                    progress_percentage=100.0,
                    duration_seconds=asset.duration,
                    completed=True,
                    completed_at=now,
                    created_at=now,
                    updated_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=_ASSET_KEY,
                    set_={
                        "progress_percentage": 100.0,
                        "completed": True,
                        "duration_seconds": func.coalesce(
                            table.c.duration_seconds, stmt.excluded.duration_seconds
                        ),
                        "completed_at": func.coalesce(
                            table.c.completed_at, stmt.excluded.completed_at
                        ),
                        "updated_at": stmt.excluded.updated_at,
                    },
                    where=or_(
                        table.c.completed.is_(False),
                        table.c.progress_percentage < 100.0,
                        table.c.completed_at.is_(None),
                    ),
                )
                session.execute(stmt)
                count += 1
        return count

    def asset_progress_by_asset(
        self, learner_id: str, asset_ids: Iterable[str]
    ) -> dict[str, AssetProgress]:
        ids = list(asset_ids)
        if not ids:
            return {}
        with self.db.session() as session:
            rows = session.scalars(
                select(AssetProgressRow).where(
                    AssetProgressRow.learner_id == learner_id,
                    AssetProgressRow.asset_id.in_(ids),
                )
            ).all()
            return {r.asset_id: AssetProgress.model_validate(r) for r in rows}

    def list_asset_progress(self, learner_id: str, unit_id: str) -> list[AssetProgress]:
        """Asset rows for a unit in creation order."""
        with self.db.session() as session:
            rows = session.scalars(
                select(AssetProgressRow)
                .where(
                    AssetProgressRow.learner_id == learner_id,
                    AssetProgressRow.unit_id == unit_id,
                )
                .order_by(AssetProgressRow.created_at, AssetProgressRow.id)
            ).all()
            return [AssetProgress.model_validate(r) for r in rows]

    # ---- pronunciation attempts ----

    def append_attempt(
        self,
        learner_id: str,
        unit_id: str,
        audio_key: str,
        score: float,
        feedback: str | None,
        now: datetime,
    ) -> PronunciationAttempt:
        """Append one immutable attempt row."""
        with self.db.session() as session:
            row = PronunciationAttemptRow(
                learner_id=learner_id,
                unit_id=unit_id,
                audio_key=audio_key,
                score=score,
                feedback=feedback,
                created_at=now,
            )
            session.add(row)
            session.flush()
            return PronunciationAttempt.model_validate(row)

    def list_attempts(self, learner_id: str, unit_id: str) -> list[PronunciationAttempt]:
        """Attempts for a unit, most recent first."""
        with self.db.session() as session:
            rows = session.scalars(
                select(PronunciationAttemptRow)
                .where(
                    PronunciationAttemptRow.learner_id == learner_id,
                    PronunciationAttemptRow.unit_id == unit_id,
                )
                .order_by(
                    PronunciationAttemptRow.created_at.desc(),
                    PronunciationAttemptRow.id.desc(),
                )
            ).all()
            return [PronunciationAttempt.model_validate(r) for r in rows]

    def attempt_scores(self, learner_id: str, unit_id: str | None = None) -> list[float]:
        """Every stored attempt score for a learner, optionally for one unit."""
        query = select(PronunciationAttemptRow.score).where(
            PronunciationAttemptRow.learner_id == learner_id
        )
        if unit_id is not None:
            query = query.where(PronunciationAttemptRow.unit_id == unit_id)
        with self.db.session() as session:
            return list(session.scalars(query).all())
