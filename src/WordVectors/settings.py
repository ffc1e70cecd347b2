# === NAVMAP v1 ===
# {
#   "module": "WordVectors.settings",
#   "purpose": "Loader, HTTP, and search settings with env and file overrides",
#   "sections": [
#     {"id": "loadersettings", "name": "LoaderSettings", "anchor": "class-loadersettings", "kind": "class"},
#     {"id": "load-settings", "name": "load_settings", "anchor": "function-load-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Configuration models for loading and querying word vectors.

``LoaderSettings`` is a ``pydantic-settings`` model so every field can be
overridden from the environment with the ``WORDVEC_`` prefix (list values
such as ``WORDVEC_VECTOR_LOCATIONS`` are given as JSON arrays).  Settings
files are JSON or YAML mappings with the same field names and are read by
:func:`load_settings`.

Examples:
    >>> settings = LoaderSettings(vector_locations=["vectors.f32.part0", "vectors.f32.part1"])
    >>> settings.max_concurrent_fetches
    4
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Mapping, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

__all__ = ["LoaderSettings", "load_settings"]

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class LoaderSettings(BaseSettings):
    """Tunables for the ingestion pipeline, HTTP transport, and search engine.

    Key fields:
    - ``vocabulary_location`` / ``vector_locations``: artifact locations,
      resolved against ``base_url`` when one is configured.
    - ``chunk_size_bytes``: read size for streamed parts; also the granularity
      of progress updates.
    - ``max_concurrent_fetches``: upper bound on parallel part downloads.
    - ``search_block_rows``: rows scored per matrix-vector product during a
      top-K scan.
    """

    vocabulary_location: str = Field(default="vocab.json")
    vector_locations: List[str] = Field(default_factory=lambda: ["vectors.f32"], min_length=1)
    base_url: Optional[str] = Field(default=None)
    chunk_size_bytes: int = Field(default=1 << 20, gt=0)
    max_concurrent_fetches: int = Field(default=4, ge=1, le=32)
    connect_timeout_sec: float = Field(default=5.0, gt=0)
    read_timeout_sec: float = Field(default=30.0, gt=0)
    verify_tls: bool = Field(default=True)
    search_block_rows: int = Field(default=65_536, gt=0)
    default_top_k: int = Field(default=10, ge=1)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="WORDVEC_",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}")
        return upper

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "LoaderSettings":
        """Build settings from a plain mapping, wrapping validation failures."""

        try:
            return cls(**dict(payload))
        except ValidationError as exc:
            raise ConfigError(f"Invalid word vector settings: {exc}") from exc


def load_settings(path: Optional[Path] = None) -> LoaderSettings:
    """Load settings from a JSON or YAML file, falling back to env/defaults.

    Args:
        path: Optional settings file. JSON is tried first, then YAML.

    Returns:
        Validated :class:`LoaderSettings`; environment variables still apply
        to fields the file does not set.

    Raises:
        ConfigError: If the file is missing, unparsable, not a mapping, or
            contains invalid values.
    """

    if path is None:
        return LoaderSettings.from_mapping({})
    if not path.exists():
        raise ConfigError(f"Settings file {path} not found")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        payload = _load_yaml(raw, path)
    if not isinstance(payload, dict):
        raise ConfigError(f"Settings file {path} must define a mapping")
    return LoaderSettings.from_mapping(payload)


def _load_yaml(raw: str, path: Path) -> Any:
    import yaml

    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse settings file {path}: {exc}") from exc
