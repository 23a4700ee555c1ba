"""Service settings: environment, .env and config/settings.yaml."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# (yaml section, yaml key) -> Settings field
YAML_FIELDS: dict[tuple[str, str], str] = {
    ("server", "host"): "host",
    ("server", "port"): "port",
    ("database", "url"): "database_url",
    ("database", "echo"): "database_echo",
    ("progress", "asset_completion_threshold"): "asset_completion_threshold",
    ("progress", "recent_activity_limit"): "recent_activity_limit",
}


def _find_project_root() -> Path:
    """Nearest ancestor of this file holding a pyproject.toml."""
    here = Path(__file__).resolve()
    return next(
        (p for p in here.parents if (p / "pyproject.toml").is_file()),
        here.parents[2],
    )


def flatten_yaml_settings(data: dict[str, Any]) -> dict[str, Any]:
    """Map the sectioned settings.yaml layout onto flat Settings field names.

    Unknown sections and keys are ignored, as are null values.
    """
    flat: dict[str, Any] = {}
    for (section, key), field in YAML_FIELDS.items():
        value = (data.get(section) or {}).get(key)
        if value is not None:
            flat[field] = value
    return flat


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Reads config/settings.yaml below the project root, if present."""

    # Overridden in tests
    yaml_path: Path | None = None

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        # Values are produced all at once by __call__
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        path = self.yaml_path or _find_project_root() / "config" / "settings.yaml"
        if not path.is_file():
            return {}
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        return flatten_yaml_settings(data or {})


class Settings(BaseSettings):
    """Progress service settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(default="sqlite:///./data/progress.db")
    database_echo: bool = Field(default=False)

    # An asset counts as completed from this percentage on
    asset_completion_threshold: float = Field(default=90.0, ge=0.0, le=100.0)
    recent_activity_limit: int = Field(default=10, ge=1)

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Environment and .env win over settings.yaml."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    return Settings()
