"""Read-only curriculum catalog models."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class AssetType(StrEnum):
    """Kinds of consumable media attached to a unit."""

    VIDEO = "video"
    AUDIO = "audio"
    SUBTITLE = "subtitle"
    SCREENSHOT = "screenshot"
    METADATA = "metadata"


class CatalogAsset(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    unit_id: str
    type: str
    storage_key: str
    duration: int | None = None  # expected seconds, when known


class CatalogUnit(BaseModel):
    """A unit with enough story context for report rollups."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    order: int
    story_id: str
    story_title: str
    level_name: str


class CatalogStory(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    order: int
    level_name: str
