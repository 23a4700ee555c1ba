"""SQLAlchemy table definitions.

Progress tables are owned by this service. Catalog and daily plan tables belong
to collaborators and are declared here so a standalone deployment can run.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# ---- Progress (owned) ----

class UnitProgressRow(Base):
    __tablename__ = "unit_progress"
    __table_args__ = (
        UniqueConstraint("learner_id", "unit_id", name="uq_unit_progress_learner_unit"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False, index=True)
    unit_id = Column(String(64), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    score = Column(Integer, default=0, nullable=False)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)


class AssetProgressRow(Base):
    __tablename__ = "unit_asset_progress"
    __table_args__ = (
        UniqueConstraint("learner_id", "asset_id", name="uq_asset_progress_learner_asset"),
        Index("ix_asset_progress_learner_unit", "learner_id", "unit_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False)
    unit_id = Column(String(64), nullable=False)
    asset_id = Column(String(64), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    progress_percentage = Column(Float, default=0.0, nullable=False)
    seconds_watched = Column(Integer, default=0, nullable=False)
    duration_seconds = Column(Integer, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)


class PronunciationAttemptRow(Base):
    __tablename__ = "pronunciation_attempts"
    __table_args__ = (
        Index("ix_pronunciation_attempts_learner_unit", "learner_id", "unit_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False)
    unit_id = Column(String(64), nullable=False)
    audio_key = Column(String(512), nullable=False)
    score = Column(Float, default=0.0, nullable=False)
    feedback = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)


# ---- Catalog (read-only here) ----

class LevelRow(Base):
    __tablename__ = "levels"

    id = Column(String(64), primary_key=True)
    name = Column(String(128), nullable=False, unique=True)
    order = Column("order", Integer, nullable=False, unique=True)

    stories = relationship("StoryRow", backref="level", cascade="all, delete-orphan")


class StoryRow(Base):
    __tablename__ = "stories"
    __table_args__ = (UniqueConstraint("level_id", "order", name="uq_stories_level_order"),)

    id = Column(String(64), primary_key=True)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    order = Column("order", Integer, nullable=False)
    level_id = Column(String(64), ForeignKey("levels.id"), nullable=False, index=True)

    units = relationship("UnitRow", backref="story", cascade="all, delete-orphan")


class UnitRow(Base):
    __tablename__ = "units"
    __table_args__ = (UniqueConstraint("story_id", "order", name="uq_units_story_order"),)

    id = Column(String(64), primary_key=True)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    order = Column("order", Integer, nullable=False)
    story_id = Column(String(64), ForeignKey("stories.id"), nullable=False, index=True)

    assets = relationship("UnitAssetRow", backref="unit", cascade="all, delete-orphan")


class UnitAssetRow(Base):
    __tablename__ = "unit_assets"

    id = Column(String(64), primary_key=True)
    unit_id = Column(String(64), ForeignKey("units.id"), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    storage_key = Column(String(512), nullable=False)
    duration = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)


# ---- Daily plan (owned by the scheduler, entries mutated on completion) ----

class DailyPlanRow(Base):
    __tablename__ = "daily_plans"
    __table_args__ = (
        UniqueConstraint("learner_id", "planned_date", name="uq_daily_plans_learner_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    learner_id = Column(String(128), nullable=False, index=True)
    planned_date = Column(Date, nullable=False)

    entries = relationship("DailyPlanEntryRow", backref="daily_plan", cascade="all, delete-orphan")


class DailyPlanEntryRow(Base):
    __tablename__ = "daily_plan_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    daily_plan_id = Column(Integer, ForeignKey("daily_plans.id"), nullable=False, index=True)
    unit_id = Column(String(64), nullable=False, index=True)
    completed = Column(Boolean, default=False, nullable=False)
    score = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)
