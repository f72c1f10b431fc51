"""Transforms between the three frames used during a gesture.

* device  - raw touch positions, in the coordinates of the view receiving input
* page    - the document page's own coordinate system (annotation geometry)
* overlay - the temporary preview layer; device scale, shifted by its offset

The host hands in a fresh CoordinateSpace on every gesture; nothing here
outlives it.
"""

from __future__ import annotations

from dataclasses import dataclass

from PyQt5.QtCore import QPointF
from PyQt5.QtGui import QTransform

from pdf_freedraw.models.path import Point, apply_affine


@dataclass(frozen=True)
class CoordinateSpace:
    """Zoom `scale`, plus where the page's origin sits in device coordinates.

    With `flip_y` the page's y axis points up (PDF user space) and
    `page_height` is needed to flip it; PyMuPDF pages are already y-down.
    """

    scale: float = 1.0
    page_origin: Point = Point(0.0, 0.0)
    page_height: float = 0.0
    flip_y: bool = False
    overlay_offset: Point = Point(0.0, 0.0)

    def __post_init__(self):
        if not self.scale > 0:
            raise ValueError(f"scale must be positive, got {self.scale!r}")
        object.__setattr__(self, "page_origin", Point(*self.page_origin))
        object.__setattr__(self, "overlay_offset", Point(*self.overlay_offset))

    # -- transforms ---------------------------------------------------------
    @property
    def page_to_device(self):
        s = self.scale
        ox, oy = self.page_origin
        if self.flip_y:
            return QTransform(s, 0.0, 0.0, -s, ox, oy + s * self.page_height)
        return QTransform(s, 0.0, 0.0, s, ox, oy)

    @property
    def device_to_page(self):
        return _inverse(self.page_to_device)

    @property
    def device_to_overlay(self):
        return QTransform.fromTranslate(-self.overlay_offset.x, -self.overlay_offset.y)

    @property
    def overlay_to_device(self):
        return QTransform.fromTranslate(self.overlay_offset.x, self.overlay_offset.y)

    @property
    def page_to_overlay(self):
        # Qt composes left to right: page -> device, then device -> overlay
        return self.page_to_device * self.device_to_overlay

    @property
    def overlay_to_page(self):
        return _inverse(self.page_to_overlay)

    # -- helpers ------------------------------------------------------------
    def page_length(self, overlay_length):
        """Convert a distance measured on screen into page units."""
        return overlay_length / self.scale


def _inverse(transform):
    inverted, ok = transform.inverted()
    if not ok:
        raise ValueError("transform is not invertible")
    return inverted


def map_point(transform, point):
    mapped = transform.map(QPointF(point[0], point[1]))
    return Point(mapped.x(), mapped.y())


def map_path(transform, path):
    return apply_affine(path, transform)
