"""Render settings and their optional YAML file."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

PAGE_FORMATS = ("a4", "letter")
ORIENTATIONS = ("portrait", "landscape")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class RenderConfig:
    """Layout defaults shared by the PDF and DOCX emitters.

    Lengths are in millimetres unless the name says otherwise; font sizes are
    points.
    """

    page_format: str = "a4"
    orientation: str = "portrait"
    margin_mm: float = 20.0
    base_font_size: float = 12.0
    line_height: float = 1.5
    font_family: str = "Helvetica"
    font_files: Dict[str, str] = field(default_factory=dict)
    max_image_height_mm: float = 120.0
    max_image_px: Tuple[int, int] = (800, 600)
    jpeg_quality: int = 90
    image_base_dir: Optional[str] = None
    docx_font: str = "Arial"
    docx_font_size: float = 12.0
    docx_margin_twips: int = 1440
    batch_limit: int = 200

    def __post_init__(self) -> None:
        if self.page_format not in PAGE_FORMATS:
            raise ConfigError(f"page_format must be one of {PAGE_FORMATS}, got {self.page_format!r}")
        if self.orientation not in ORIENTATIONS:
            raise ConfigError(f"orientation must be one of {ORIENTATIONS}, got {self.orientation!r}")
        if self.margin_mm < 0 or self.base_font_size <= 0 or self.line_height <= 0:
            raise ConfigError("margin_mm, base_font_size and line_height must be positive")
        if not 1 <= self.jpeg_quality <= 100:
            raise ConfigError(f"jpeg_quality must be within 1..100, got {self.jpeg_quality}")
        if self.batch_limit < 1:
            raise ConfigError(f"batch_limit must be at least 1, got {self.batch_limit}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RenderConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        values = dict(data)
        if "max_image_px" in values:
            try:
                width, height = values["max_image_px"]
                values["max_image_px"] = (int(width), int(height))
            except (TypeError, ValueError) as e:
                raise ConfigError(f"max_image_px must be a [width, height] pair: {e}") from e
        if "font_files" in values and not isinstance(values["font_files"], Mapping):
            raise ConfigError("font_files must map font family names to file paths")
        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigError(str(e)) from e

    def with_overrides(self, **overrides: Any) -> "RenderConfig":
        """Copy with every non-``None`` override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def load_config(path: Path) -> RenderConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, Mapping):
        raise ConfigError("config file must contain a mapping at the top level")
    return RenderConfig.from_mapping(data)
