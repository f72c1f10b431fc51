from .annotation import Annotation, InkKind, Stroke, stroke_bounds
from .path import (
    CubicTo, LineTo, MoveTo, Path, Point, QuadTo,
    apply_affine, bounding_rect, decode, encode, extract_points,
    open_oval_in, resembles_oval, translate_center_to,
)

__all__ = [
    "Annotation", "InkKind", "Stroke", "stroke_bounds",
    "CubicTo", "LineTo", "MoveTo", "Path", "Point", "QuadTo",
    "apply_affine", "bounding_rect", "decode", "encode", "extract_points",
    "open_oval_in", "resembles_oval", "translate_center_to",
]
