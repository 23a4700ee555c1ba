"""Curriculum catalog lookups (levels -> stories -> units -> assets).

The catalog is read-only for the progress engine. ``SqlCatalog.load`` exists to
seed a standalone database for demos and tests.
"""

from collections.abc import Iterable
from typing import Any, Protocol

import structlog
from sqlalchemy import select

from lesson_progress.models.catalog import AssetType, CatalogAsset, CatalogStory, CatalogUnit
from lesson_progress.storage.database import Database
from lesson_progress.storage.tables import LevelRow, StoryRow, UnitAssetRow, UnitRow

logger = structlog.get_logger()


class Catalog(Protocol):
    """Read-only curriculum lookups consumed by the progress engine."""

    def get_unit(self, unit_id: str) -> CatalogUnit | None:
        ...

    def get_asset(self, asset_id: str) -> CatalogAsset | None:
        ...

    def get_story(self, story_id: str) -> CatalogStory | None:
        ...

    def unit_assets(self, unit_id: str) -> list[CatalogAsset]:
        """Assets of a unit in catalog order."""
        ...

    def story_units(self, story_id: str) -> list[CatalogUnit]:
        """Units of a story ordered by their catalog order."""
        ...

    def units_by_id(self, unit_ids: Iterable[str]) -> dict[str, CatalogUnit]:
        ...


def _to_unit(unit: UnitRow, story: StoryRow, level: LevelRow) -> CatalogUnit:
    return CatalogUnit(
        id=unit.id,
        title=unit.title,
        order=unit.order,
        story_id=story.id,
        story_title=story.title,
        level_name=level.name,
    )


class SqlCatalog:
    """Catalog backed by the levels/stories/units/unit_assets tables."""

    def __init__(self, db: Database):
        self.db = db

    def _unit_query(self):
        return (
            select(UnitRow, StoryRow, LevelRow)
            .join(StoryRow, UnitRow.story_id == StoryRow.id)
            .join(LevelRow, StoryRow.level_id == LevelRow.id)
        )

    def get_unit(self, unit_id: str) -> CatalogUnit | None:
        with self.db.session() as session:
            row = session.execute(self._unit_query().where(UnitRow.id == unit_id)).first()
            return _to_unit(*row) if row else None

    def get_asset(self, asset_id: str) -> CatalogAsset | None:
        with self.db.session() as session:
            row = session.get(UnitAssetRow, asset_id)
            return CatalogAsset.model_validate(row) if row else None

    def get_story(self, story_id: str) -> CatalogStory | None:
        with self.db.session() as session:
            row = session.execute(
                select(StoryRow, LevelRow)
                .join(LevelRow, StoryRow.level_id == LevelRow.id)
                .where(StoryRow.id == story_id)
            ).first()
            if row is None:
                return None
            story, level = row
            return CatalogStory(id=story.id, title=story.title, order=story.order, level_name=level.name)

    def unit_assets(self, unit_id: str) -> list[CatalogAsset]:
        with self.db.session() as session:
            rows = session.scalars(
                select(UnitAssetRow)
                .where(UnitAssetRow.unit_id == unit_id)
                .order_by(UnitAssetRow.created_at, UnitAssetRow.id)
            ).all()
            return [CatalogAsset.model_validate(r) for r in rows]

    def story_units(self, story_id: str) -> list[CatalogUnit]:
        with self.db.session() as session:
            rows = session.execute(
                self._unit_query().where(UnitRow.story_id == story_id).order_by(UnitRow.order)
            ).all()
            return [_to_unit(*r) for r in rows]

    def units_by_id(self, unit_ids: Iterable[str]) -> dict[str, CatalogUnit]:
        ids = list(unit_ids)
        if not ids:
            return {}
        with self.db.session() as session:
            rows = session.execute(self._unit_query().where(UnitRow.id.in_(ids))).all()
            return {r[0].id: _to_unit(*r) for r in rows}

    def load(self, levels: list[dict[str, Any]]) -> None:
        """Seed catalog rows from nested level/story/unit/asset dicts.

        Example::

            catalog.load([{"id": "lvl-1", "name": "A1", "order": 1, "stories": [
                {"id": "story-1", "title": "Cafe", "order": 1, "units": [
                    {"id": "unit-1", "title": "Ordering", "order": 1, "assets": [
                        {"id": "asset-1", "type": "video", "storage_key": "v/1.mp4",
                         "duration": 120},
                    ]},
                ]},
            ]}])
        """
        with self.db.session() as session:
            for level in levels:
                session.add(LevelRow(id=level["id"], name=level["name"], order=level["order"]))
                for story in level.get("stories", []):
                    session.add(StoryRow(
                        id=story["id"],
                        title=story["title"],
                        description=story.get("description"),
                        order=story["order"],
                        level_id=level["id"],
                    ))
                    for unit in story.get("units", []):
                        session.add(UnitRow(
                            id=unit["id"],
                            title=unit["title"],
                            description=unit.get("description"),
                            order=unit["order"],
                            story_id=story["id"],
                        ))
                        session.flush()
                        for asset in unit.get("assets", []):
                            session.add(UnitAssetRow(
                                id=asset["id"],
                                unit_id=unit["id"],
                                type=AssetType(asset.get("type", AssetType.VIDEO)).value,
                                storage_key=asset["storage_key"],
                                duration=asset.get("duration"),
                            ))
                            # One insert at a time so created_at follows list order
                            session.flush()
        logger.info("catalog_loaded", levels=len(levels))
