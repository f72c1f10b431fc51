"""Stroke outlining, hit testing and path difference.

Outlines come from QPainterPathStroker and filled-area booleans from
QPainterPath. Ink strokes are centerlines, so subtracting an eraser area
from them clips the open curve: every segment keeps its own curve type and is
cut at the parameters where it crosses the eraser boundary.
"""

from __future__ import annotations

import math

from PyQt5.QtCore import QPointF, Qt
from PyQt5.QtGui import QPainterPath, QPainterPathStroker

from pdf_freedraw.models.path import (
    MoveTo, Path, bezier_point, bounding_rect, from_qpainterpath,
    segment_from_controls, split_bezier, to_qpainterpath,
)

DEFAULT_TOLERANCE = 10.0
MIN_PIECE_LENGTH = 0.5

_CAPS = {"round": Qt.RoundCap, "square": Qt.SquareCap, "flat": Qt.FlatCap}
_JOINS = {"round": Qt.RoundJoin, "miter": Qt.MiterJoin, "bevel": Qt.BevelJoin}

# Crossing search: sampling step in path units, then bisection depth
_SAMPLE_STEP = 1.0
_MIN_SAMPLES = 4
_MAX_SAMPLES = 512
_BISECT_STEPS = 24


def rects_intersect(a, b):
    """Inclusive rect overlap that also works for zero-width / zero-height rects.

    QRectF.intersects() rejects degenerate rects, and a horizontal stroke has
    a zero-height box.
    """
    return (a.left() <= b.right() and b.left() <= a.right()
            and a.top() <= b.bottom() and b.top() <= a.bottom())


def stroke_to_area(path, width, cap="round", join="round"):
    """Closed fillable outline of `path` drawn with a pen of `width`."""
    if path.is_empty() or width <= 0:
        return QPainterPath()
    stroker = QPainterPathStroker()
    stroker.setWidth(width)
    stroker.setCapStyle(_CAPS[cap])
    stroker.setJoinStyle(_JOINS[join])
    return stroker.createStroke(to_qpainterpath(path))


def contains_point(area, point):
    return area.contains(QPointF(point[0], point[1]))


def hit_test(path, point, tolerance=DEFAULT_TOLERANCE):
    """Cheap box test first, exact outline test second."""
    if path is None or path.is_empty():
        return False
    box = bounding_rect(path).adjusted(-tolerance, -tolerance, tolerance, tolerance)
    if not (box.left() <= point[0] <= box.right() and box.top() <= point[1] <= box.bottom()):
        return False
    return contains_point(stroke_to_area(path, tolerance), point)


def _as_area(subtrahend, tolerance):
    if isinstance(subtrahend, QPainterPath):
        return subtrahend
    if subtrahend.closed:
        return to_qpainterpath(subtrahend)
    # An open path has no area of its own; thicken it by the hit tolerance
    return stroke_to_area(subtrahend, tolerance)


def difference(subject, subtrahend, tolerance=DEFAULT_TOLERANCE, min_piece_length=MIN_PIECE_LENGTH):
    """Subtract an area from a path, returning the surviving pieces in order.

    `subtrahend` is a QPainterPath area or a Path; an open Path is widened by
    `tolerance` first. An empty result means the subject was fully consumed
    or was degenerate to begin with.
    """
    if subject.is_empty() or subject.length() <= 0.0:
        return []
    area = _as_area(subtrahend, tolerance)
    if area.isEmpty() or not rects_intersect(bounding_rect(subject), area.boundingRect()):
        return [subject]
    if subject.closed:
        remainder = to_qpainterpath(subject).subtracted(area)
        pieces = from_qpainterpath(remainder)
    else:
        pieces = _clip_open_path(subject, area)
    return [p for p in pieces if p.length() >= min_piece_length]


def _sample_count(ctrl):
    chord = sum(a.distance_to(b) for a, b in zip(ctrl, ctrl[1:]))
    return max(_MIN_SAMPLES, min(_MAX_SAMPLES, int(math.ceil(chord / _SAMPLE_STEP))))


def _crossing(ctrl, area, t_in, t_out):
    """Bisect between a parameter inside the area and one outside it."""
    for _ in range(_BISECT_STEPS):
        mid = (t_in + t_out) / 2.0
        if contains_point(area, bezier_point(ctrl, mid)):
            t_in = mid
        else:
            t_out = mid
    return (t_in + t_out) / 2.0


def _outside_intervals(ctrl, area):
    """Parameter intervals of the curve lying outside the area."""
    n = _sample_count(ctrl)
    inside = [contains_point(area, bezier_point(ctrl, i / n)) for i in range(n + 1)]
    intervals = []
    start = None if inside[0] else 0.0
    for i in range(1, n + 1):
        if inside[i] == inside[i - 1]:
            continue
        t0, t1 = (i - 1) / n, i / n
        if inside[i]:
            t = _crossing(ctrl, area, t1, t0)
            if start is not None and t > start:
                intervals.append((start, t))
            start = None
        else:
            start = _crossing(ctrl, area, t0, t1)
    if start is not None and start < 1.0:
        intervals.append((start, 1.0))
    return intervals


def _sub_curve(ctrl, a, b):
    if b < 1.0:
        ctrl = split_bezier(ctrl, b)[0]
    if a > 0.0:
        ctrl = split_bezier(ctrl, a / b)[1]
    return ctrl


def _clip_open_path(subject, area):
    pieces = []
    run = None
    current = None

    def flush():
        nonlocal run
        if run is not None and len(run) > 1:
            pieces.append(Path(tuple(run)))
        run = None

    for seg in subject.segments:
        if isinstance(seg, MoveTo):
            flush()
            current = seg.point
            continue
        ctrl = (current,) + seg.points()
        for a, b in _outside_intervals(ctrl, area):
            part = _sub_curve(ctrl, a, b)
            if a > 0.0 or run is None:
                flush()
                run = [MoveTo(part[0])]
            run.append(segment_from_controls(part))
            if b < 1.0:
                flush()
        if run is not None and not _ends_outside(run, seg):
            flush()
        current = seg.point
    flush()
    return pieces


def _ends_outside(run, seg):
    """A run may continue into the next segment only if it reached this segment's end."""
    return run[-1].point == seg.point
