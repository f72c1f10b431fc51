"""Vector path model: move / line / quadratic / cubic segments.

Paths are immutable values. Builders return new paths, and every transform
(`apply_affine`, `translate_center_to`) produces a copy. Qt's QPainterPath is
only used at the edges (`to_qpainterpath` / `from_qpainterpath`) so that the
geometry code can hand paths to the stroker and the boolean clipper.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import ClassVar, NamedTuple, Tuple, Union

from PyQt5.QtCore import QPointF, QRectF
from PyQt5.QtGui import QPainterPath

from pdf_freedraw.errors import PathDecodeError, PathError

# Magic number for approximating a quarter ellipse with one cubic curve
KAPPA = 0.5522847498307936


class Point(NamedTuple):
    x: float
    y: float

    def distance_to(self, other):
        return math.hypot(other.x - self.x, other.y - self.y)


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class MoveTo:
    point: Point
    record_type: ClassVar[str] = "move"

    def points(self):
        return (self.point,)

    def with_points(self, points):
        return MoveTo(Point(*points[0]))


@dataclass(frozen=True)
class LineTo:
    point: Point
    record_type: ClassVar[str] = "addLine"

    def points(self):
        return (self.point,)

    def with_points(self, points):
        return LineTo(Point(*points[0]))


@dataclass(frozen=True)
class QuadTo:
    control: Point
    point: Point
    record_type: ClassVar[str] = "addQuadCurve"

    def points(self):
        return (self.control, self.point)

    def with_points(self, points):
        return QuadTo(Point(*points[0]), Point(*points[1]))


@dataclass(frozen=True)
class CubicTo:
    control1: Point
    control2: Point
    point: Point
    record_type: ClassVar[str] = "addCurve"

    def points(self):
        return (self.control1, self.control2, self.point)

    def with_points(self, points):
        return CubicTo(Point(*points[0]), Point(*points[1]), Point(*points[2]))


PathSegment = Union[MoveTo, LineTo, QuadTo, CubicTo]


# ---------------------------------------------------------------------------
# Path
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Path:
    """Ordered segments; the first one is always a MoveTo.

    `closed` marks an explicit close back to the last move point. It is kept
    out of the segment list so that segment counts stay meaningful when a path
    is clipped.
    """

    segments: Tuple[PathSegment, ...] = ()
    closed: bool = False

    def __post_init__(self):
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))
        if self.segments and not isinstance(self.segments[0], MoveTo):
            raise PathError("a path must start with a move segment")
        if not self.segments and self.closed:
            raise PathError("an empty path cannot be closed")

    # -- builders -----------------------------------------------------------
    @classmethod
    def start(cls, point):
        return cls((MoveTo(Point(*point)),))

    def _append(self, segment):
        if not self.segments:
            raise PathError("cannot extend an empty path, start it with a move first")
        if self.closed:
            raise PathError("cannot extend a closed path")
        return Path(self.segments + (segment,))

    def move_to(self, point):
        return Path(self.segments + (MoveTo(Point(*point)),))

    def line_to(self, point):
        return self._append(LineTo(Point(*point)))

    def quad_to(self, control, point):
        return self._append(QuadTo(Point(*control), Point(*point)))

    def cubic_to(self, control1, control2, point):
        return self._append(CubicTo(Point(*control1), Point(*control2), Point(*point)))

    def close(self):
        if not self.segments:
            raise PathError("cannot close an empty path")
        return Path(self.segments, closed=True)

    # -- accessors ----------------------------------------------------------
    def __len__(self):
        return len(self.segments)

    def is_empty(self):
        return not self.segments

    def first_point(self):
        return self.segments[0].point if self.segments else None

    def last_point(self):
        return self.segments[-1].point if self.segments else None

    def all_points(self):
        """Every anchor and control point, in segment order."""
        return [pt for seg in self.segments for pt in seg.points()]

    def length(self, samples=16):
        """Approximate arc length; curves are flattened into `samples` chords."""
        total = 0.0
        current = None
        for seg in self.segments:
            if isinstance(seg, MoveTo):
                current = seg.point
                continue
            ctrl = (current,) + seg.points()
            prev = current
            steps = 1 if isinstance(seg, LineTo) else samples
            for i in range(1, steps + 1):
                pt = bezier_point(ctrl, i / steps)
                total += prev.distance_to(pt)
                prev = pt
            current = seg.point
        return total


# ---------------------------------------------------------------------------
# Bezier helpers
# ---------------------------------------------------------------------------
def _lerp(a, b, t):
    return Point(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)


def bezier_point(ctrl, t):
    """Evaluate a Bezier curve of any degree with de Casteljau."""
    pts = list(ctrl)
    while len(pts) > 1:
        pts = [_lerp(pts[i], pts[i + 1], t) for i in range(len(pts) - 1)]
    return pts[0]


def split_bezier(ctrl, t):
    """Split control points at `t`, returning (left, right) control tuples."""
    left, right = [ctrl[0]], [ctrl[-1]]
    pts = list(ctrl)
    while len(pts) > 1:
        pts = [_lerp(pts[i], pts[i + 1], t) for i in range(len(pts) - 1)]
        left.append(pts[0])
        right.append(pts[-1])
    return tuple(left), tuple(reversed(right))


def segment_from_controls(ctrl):
    """Build the drawing segment whose curve is described by `ctrl` (start included)."""
    if len(ctrl) == 2:
        return LineTo(ctrl[1])
    if len(ctrl) == 3:
        return QuadTo(ctrl[1], ctrl[2])
    if len(ctrl) == 4:
        return CubicTo(ctrl[1], ctrl[2], ctrl[3])
    raise PathError(f"unsupported curve degree: {len(ctrl) - 1}")


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------
def _map(transform, point):
    mapped = transform.map(QPointF(point.x, point.y))
    return Point(mapped.x(), mapped.y())


def apply_affine(path, transform):
    """Map every anchor and control point through a QTransform."""
    segments = tuple(
        seg.with_points([_map(transform, pt) for pt in seg.points()])
        for seg in path.segments
    )
    return Path(segments, closed=path.closed)


def translate(path, dx, dy):
    segments = tuple(
        seg.with_points([Point(pt.x + dx, pt.y + dy) for pt in seg.points()])
        for seg in path.segments
    )
    return Path(segments, closed=path.closed)


def bounding_rect(path):
    """Control-point bounding box as a QRectF (null for an empty path)."""
    pts = path.all_points()
    if not pts:
        return QRectF()
    xs = [p.x for p in pts]
    ys = [p.y for p in pts]
    return QRectF(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def translate_center_to(path, target):
    """Shift the path so that the centre of its bounding box lands on `target`."""
    if path.is_empty():
        return path
    center = bounding_rect(path).center()
    return translate(path, target[0] - center.x(), target[1] - center.y())


def extract_points(path):
    """Anchor points only; control points are left out.

    For a closed path a trailing anchor sitting on the start point is dropped,
    since it only repeats the start.
    """
    points = [seg.point for seg in path.segments]
    if path.closed and len(points) > 1 and points[-1] == points[0]:
        points.pop()
    return points


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def _pt(point):
    return [point.x, point.y]


def encode(path):
    """Serialize a path into the JSON record list stored in annotation metadata."""
    records = []
    for seg in path.segments:
        if isinstance(seg, QuadTo):
            records.append({"type": seg.record_type, "point": _pt(seg.point),
                            "controlPoint": _pt(seg.control)})
        elif isinstance(seg, CubicTo):
            records.append({"type": seg.record_type, "point": _pt(seg.point),
                            "controlPoint1": _pt(seg.control1),
                            "controlPoint2": _pt(seg.control2)})
        else:
            records.append({"type": seg.record_type, "point": _pt(seg.point)})
    if path.closed:
        records.append({"type": "close"})
    return json.dumps(records, separators=(",", ":")).encode("utf-8")


def _read_point(record, key):
    value = record[key]
    if len(value) != 2:
        raise ValueError(f"{key} must hold two coordinates")
    x, y = float(value[0]), float(value[1])
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError(f"{key} is not finite")
    return Point(x, y)


def decode(data):
    """Inverse of `encode`; raises PathDecodeError on anything malformed."""
    try:
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("utf-8")
        records = json.loads(data)
        if not isinstance(records, list):
            raise ValueError("path metadata must be a list of records")
        segments = []
        closed = False
        for record in records:
            if closed:
                raise ValueError("records found after close")
            kind = record["type"]
            if kind == "move":
                segments.append(MoveTo(_read_point(record, "point")))
            elif kind == "addLine":
                segments.append(LineTo(_read_point(record, "point")))
            elif kind == "addQuadCurve":
                segments.append(QuadTo(_read_point(record, "controlPoint"),
                                       _read_point(record, "point")))
            elif kind == "addCurve":
                segments.append(CubicTo(_read_point(record, "controlPoint1"),
                                        _read_point(record, "controlPoint2"),
                                        _read_point(record, "point")))
            elif kind == "close":
                closed = True
            else:
                raise ValueError(f"unknown segment type {kind!r}")
        return Path(tuple(segments), closed=closed)
    except (ValueError, KeyError, TypeError, UnicodeDecodeError) as e:
        raise PathDecodeError(f"cannot decode path metadata: {e}") from e


# ---------------------------------------------------------------------------
# Qt conversion
# ---------------------------------------------------------------------------
def to_qpainterpath(path):
    qpath = QPainterPath()
    for seg in path.segments:
        if isinstance(seg, MoveTo):
            qpath.moveTo(QPointF(*seg.point))
        elif isinstance(seg, LineTo):
            qpath.lineTo(QPointF(*seg.point))
        elif isinstance(seg, QuadTo):
            qpath.quadTo(QPointF(*seg.control), QPointF(*seg.point))
        else:
            qpath.cubicTo(QPointF(*seg.control1), QPointF(*seg.control2),
                          QPointF(*seg.point))
    if path.closed:
        qpath.closeSubpath()
    return qpath


def _close_enough(a, b, eps=1e-6):
    return abs(a.x - b.x) <= eps and abs(a.y - b.y) <= eps


def from_qpainterpath(qpath):
    """Split a QPainterPath into one Path per subpath.

    Qt closes a subpath by appending a line back to its start; such subpaths
    come back with `closed=True` and without that final line.
    """
    subpaths = []
    segments = []

    def flush():
        if len(segments) > 1:
            start, last = segments[0].point, segments[-1].point
            if _close_enough(start, last):
                body = segments[:-1] if isinstance(segments[-1], LineTo) else segments
                if len(body) > 1:
                    subpaths.append(Path(tuple(body), closed=True))
            else:
                subpaths.append(Path(tuple(segments)))

    i = 0
    count = qpath.elementCount()
    while i < count:
        e = qpath.elementAt(i)
        pt = Point(e.x, e.y)
        if e.type == QPainterPath.MoveToElement:
            flush()
            segments = [MoveTo(pt)]
            i += 1
        elif e.type == QPainterPath.LineToElement:
            segments.append(LineTo(pt))
            i += 1
        elif e.type == QPainterPath.CurveToElement:
            c2 = qpath.elementAt(i + 1)
            end = qpath.elementAt(i + 2)
            segments.append(CubicTo(pt, Point(c2.x, c2.y), Point(end.x, end.y)))
            i += 3
        else:
            i += 1
    flush()
    return subpaths


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------
def open_oval_in(rect):
    """Oval inscribed in `rect`, made of four cubics and left unclosed."""
    cx, cy = rect.center().x(), rect.center().y()
    rx, ry = rect.width() / 2.0, rect.height() / 2.0
    ox, oy = rx * KAPPA, ry * KAPPA
    return (Path.start((cx + rx, cy))
            .cubic_to((cx + rx, cy + oy), (cx + ox, cy + ry), (cx, cy + ry))
            .cubic_to((cx - ox, cy + ry), (cx - rx, cy + oy), (cx - rx, cy))
            .cubic_to((cx - rx, cy - oy), (cx - ox, cy - ry), (cx, cy - ry))
            .cubic_to((cx + ox, cy - ry), (cx + rx, cy - oy), (cx + rx, cy)))


def resembles_oval(path, end_tolerance=10.0, step_tolerance=20.0):
    """True when a free-hand path is nearly a closed loop.

    The start and end anchors must lie within `end_tolerance` of each other
    and no two adjacent anchors may be farther apart than `step_tolerance`.
    """
    points = extract_points(path)
    if len(points) < 3:
        return False
    if points[0].distance_to(points[-1]) > end_tolerance:
        return False
    return all(a.distance_to(b) <= step_tolerance for a, b in zip(points, points[1:]))
