"""Drawing configuration exposed to the host, plus JSON settings persistence."""

from __future__ import annotations

import json
import logging
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pdf_freedraw.models.annotation import InkKind

logger = logging.getLogger(__name__)


class FreedrawConfig(BaseModel):
    """Per-surface drawing settings, held by value by each StrokeSession.

    Distances are in page units except `min_gesture_distance` and
    `min_eraser_width`, which are measured on screen.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    color: Tuple[int, int, int, int] = (255, 0, 0, 255)
    width: float = Field(3.0, gt=0)
    ink_kind: InkKind = InkKind.PEN
    highlighter_alpha: float = Field(0.3, ge=0.0, le=1.0)
    max_undo_entries: int = Field(10, ge=0)     # 0 keeps everything
    convert_closed_curves_to_ovals: bool = False
    split_ink_on_erase: bool = True
    keep_all_erase_pieces: bool = False
    eraser_width_factor: float = Field(1.0, gt=0)
    min_eraser_width: float = Field(40.0, ge=0)
    min_gesture_distance: float = Field(10.0, ge=0)
    hit_tolerance: float = Field(10.0, gt=0)
    oval_end_tolerance: float = Field(10.0, ge=0)
    oval_step_tolerance: float = Field(20.0, ge=0)

    @field_validator("color")
    @classmethod
    def _check_color(cls, value):
        if any(not 0 <= c <= 255 for c in value):
            raise ValueError("color components must be within 0-255")
        return value

    def updated(self, **changes):
        """Validated copy with `changes` applied."""
        return type(self).model_validate({**self.model_dump(), **changes})

    def stroke_alpha(self):
        """Alpha override for new strokes (only highlighters have one)."""
        if self.ink_kind == InkKind.HIGHLIGHTER:
            return self.highlighter_alpha
        return None

    def eraser_width(self, scale):
        """Eraser outline width in overlay units for the given zoom."""
        return max(self.width * self.eraser_width_factor * scale, self.min_eraser_width)


def load_config(path):
    """Read settings from a JSON file, merged over the defaults.

    A missing, unreadable or invalid file yields the defaults.
    """
    defaults = FreedrawConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            saved = json.load(f)
    except FileNotFoundError:
        return defaults
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("ignoring unreadable settings file %s: %s", path, e)
        return defaults
    if not isinstance(saved, dict):
        logger.warning("ignoring settings file %s: expected an object", path)
        return defaults
    try:
        return defaults.updated(**saved)
    except ValidationError as e:
        logger.warning("ignoring invalid settings in %s: %s", path, e)
        return defaults


def save_config(config, path):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.model_dump(mode="json"), f, indent=2)
