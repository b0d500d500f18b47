"""Pyramid settings and TOML profiles."""

from __future__ import annotations

import logging
from pathlib import Path

import tomlkit
from pydantic import BaseModel, field_validator, model_validator

from gpkg_pyramid.shared.constants import (
    DEFAULT_BUFFER_PERCENTAGE,
    MAX_BUFFER_PERCENTAGE,
    MAX_ZOOM,
    MIN_ZOOM,
    TILE_SIZE,
    TileFormat,
    default_tile_format,
)

logger = logging.getLogger(__name__)


class PyramidSettings(BaseModel):
    """Knobs of a single pyramid build."""

    model_config = {
        'extra': 'ignore',  # unknown keys in profiles are tolerated
    }

    tile_size: int = TILE_SIZE
    # Zoom ladder is clamped into [min_zoom, max_zoom]
    min_zoom: int = MIN_ZOOM
    max_zoom: int = MAX_ZOOM
    # Share of the square-expanded overlay box added on each side
    buffer_percentage: float = DEFAULT_BUFFER_PERCENTAGE
    skip_empty_tiles: bool = True
    tile_format: TileFormat = default_tile_format()

    @field_validator('tile_size')
    @classmethod
    def validate_tile_size(cls, v: int | str) -> int:
        v = int(v)
        if v <= 0:
            msg = f'tile_size must be positive, got {v}'
            raise ValueError(msg)
        return v

    @field_validator('min_zoom', 'max_zoom')
    @classmethod
    def validate_zoom(cls, v: int | str) -> int:
        v = int(v)
        if not (MIN_ZOOM <= v <= MAX_ZOOM):
            msg = f'Zoom must be in [{MIN_ZOOM}, {MAX_ZOOM}], got {v}'
            raise ValueError(msg)
        return v

    @field_validator('buffer_percentage')
    @classmethod
    def validate_buffer(cls, v: float | str) -> float:
        v = float(v)
        if not (0.0 <= v < MAX_BUFFER_PERCENTAGE):
            msg = f'buffer_percentage must be in [0.0, {MAX_BUFFER_PERCENTAGE}), got {v}'
            raise ValueError(msg)
        return v

    @model_validator(mode='after')
    def validate_zoom_order(self) -> PyramidSettings:
        if self.min_zoom > self.max_zoom:
            msg = f'min_zoom {self.min_zoom} is above max_zoom {self.max_zoom}'
            raise ValueError(msg)
        return self


def load_settings(path: str | Path) -> PyramidSettings:
    """Read and validate a TOML profile."""
    path = Path(path)
    if not path.exists():
        msg = f'Settings file not found: {path}'
        raise FileNotFoundError(msg)
    data = tomlkit.parse(path.read_text(encoding='utf-8'))
    settings = PyramidSettings.model_validate(data.unwrap())
    logger.info('Loaded settings from %s', path)
    return settings


def save_settings(path: str | Path, settings: PyramidSettings) -> Path:
    """Write settings to a TOML profile, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(mode='json')
    path.write_text(tomlkit.dumps(data), encoding='utf-8')
    logger.info('Saved settings to %s', path)
    return path
