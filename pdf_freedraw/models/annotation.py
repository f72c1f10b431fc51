"""Data holders for strokes and page annotations."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple
from uuid import uuid4

from PyQt5.QtCore import QRectF

from pdf_freedraw.models.path import (
    Path, bounding_rect, translate, translate_center_to,
)


class InkKind(str, Enum):
    PEN = "pen"
    HIGHLIGHTER = "highlighter"
    ERASER = "eraser"


@dataclass(frozen=True)
class Stroke:
    """A path plus its style.

    `color` is RGBA in 0-255. `alpha` overrides the colour's own alpha, which
    is how highlighter strokes get their translucency.
    """

    path: Path
    width: float
    color: Tuple[int, int, int, int]
    kind: InkKind = InkKind.PEN
    alpha: Optional[float] = None

    @property
    def effective_color(self):
        r, g, b, a = self.color
        if self.alpha is not None:
            a = int(round(self.alpha * 255))
        return (r, g, b, a)

    def with_path(self, path):
        return replace(self, path=path)


def inflate(rect, margin):
    return rect.adjusted(-margin, -margin, margin, margin)


def stroke_bounds(path, width):
    """Bounding rect of a page-space path widened by half the line width."""
    return inflate(bounding_rect(path), width / 2.0)


class Annotation:
    """Identity-bearing record attached to a document page.

    Instances compare by identity so they can be used as dict / set keys by
    the store and the undo history. Ink geometry is kept relative to the
    annotation's own bounds (see `page_path`).
    """
    INK = "ink"
    HIGHLIGHT = "highlight"
    NOTE = "note"
    TEXT = "text"
    RECT = "rectangle"

    def __init__(self, kind, page, bounds, stroke=None, annotation_id=None, **kwargs):
        self.id = annotation_id or uuid4().hex
        self.kind = kind
        self.page = page
        self.bounds = QRectF(bounds)
        self.stroke = stroke
        self.hidden = False     # set while the eraser is editing this annotation
        self.data = kwargs      # free-form host metadata (author, subject, ...)

    @classmethod
    def ink(cls, page_path, width, color, kind, page, alpha=None, bounds=None, **kwargs):
        """Build an ink annotation from a page-space path.

        Without explicit `bounds` the rect is the path's box widened by half
        the line width. The stored path is centred inside that rect.
        """
        if bounds is None:
            bounds = stroke_bounds(page_path, width)
        local = translate_center_to(page_path, (bounds.width() / 2.0, bounds.height() / 2.0))
        stroke = Stroke(path=local, width=width, color=tuple(color), kind=InkKind(kind), alpha=alpha)
        return cls(cls.INK, page, bounds, stroke=stroke, **kwargs)

    def is_ink(self):
        return self.kind == self.INK

    def page_path(self):
        """The stroke path in page coordinates, or None without geometry."""
        if self.stroke is None or self.stroke.path.is_empty():
            return None
        return translate(self.stroke.path, self.bounds.x(), self.bounds.y())

    def contains(self, point):
        """Inclusive point-in-bounds test, usable on zero-size rects."""
        r = self.bounds
        return r.left() <= point[0] <= r.right() and r.top() <= point[1] <= r.bottom()

    def replacement(self, page_path):
        """New ink annotation with this one's style and metadata around `page_path`."""
        s = self.stroke
        return Annotation.ink(page_path, s.width, s.color, s.kind, self.page,
                              alpha=s.alpha, **self.data)

    def __repr__(self):
        return f"Annotation({self.kind!r}, page={self.page}, id={self.id[:8]})"
