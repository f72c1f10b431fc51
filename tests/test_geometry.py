from __future__ import annotations

import pytest
from PyQt5.QtCore import QRectF
from PyQt5.QtGui import QPainterPath

from pdf_freedraw.geometry import difference, hit_test, rects_intersect, stroke_to_area
from pdf_freedraw.models.path import CubicTo, LineTo, Path, QuadTo, bounding_rect, to_qpainterpath
from tests.factories import polyline


def _approx_point(point, x, y, abs_tol=0.1):
    return point.x == pytest.approx(x, abs=abs_tol) and point.y == pytest.approx(y, abs=abs_tol)


def _box(x, y, w, h) -> QPainterPath:
    area = QPainterPath()
    area.addRect(QRectF(x, y, w, h))
    return area


def test_rects_intersect_handles_flat_boxes() -> None:
    flat = QRectF(0, 10, 100, 0)
    assert rects_intersect(flat, QRectF(50, 0, 10, 20))
    assert rects_intersect(QRectF(0, 0, 10, 10), QRectF(10, 10, 5, 5))
    assert not rects_intersect(flat, QRectF(50, 11, 10, 20))


def test_stroke_to_area_of_nothing_is_empty() -> None:
    assert stroke_to_area(Path(), 10).isEmpty()
    assert stroke_to_area(polyline((0, 0), (10, 0)), 0).isEmpty()


def test_stroke_to_area_covers_the_pen_width() -> None:
    area = stroke_to_area(polyline((0, 0), (100, 0)), 20)
    rect = area.boundingRect()
    assert rect.top() == pytest.approx(-10, abs=0.1)
    assert rect.left() == pytest.approx(-10, abs=0.1)


def test_hit_test() -> None:
    line = polyline((0, 0), (100, 0))
    assert hit_test(line, (50, 3), tolerance=10)
    assert not hit_test(line, (50, 8), tolerance=10)
    assert not hit_test(line, (300, 0), tolerance=10)
    assert not hit_test(Path(), (0, 0))


def test_difference_with_distant_area_returns_subject() -> None:
    subject = polyline((0, 0), (100, 0))
    assert difference(subject, _box(0, 50, 10, 10)) == [subject]


def test_difference_covering_everything_is_empty() -> None:
    assert difference(polyline((0, 0), (100, 0)), _box(-10, -10, 120, 20)) == []


def test_difference_of_degenerate_subject_is_empty() -> None:
    assert difference(Path.start((5, 5)), _box(0, 0, 10, 10)) == []
    assert difference(polyline((5, 5), (5, 5)), _box(0, 0, 10, 10)) == []


def test_difference_splits_a_line_in_two() -> None:
    pieces = difference(polyline((0, 0), (50, 0), (100, 0)), _box(40, -10, 20, 20))
    assert len(pieces) == 2
    first, second = pieces
    assert _approx_point(first.first_point(), 0, 0)
    assert _approx_point(first.last_point(), 40, 0)
    assert _approx_point(second.first_point(), 60, 0)
    assert _approx_point(second.last_point(), 100, 0)
    assert all(isinstance(s, LineTo) for p in pieces for s in p.segments[1:])


def test_difference_keeps_curve_types() -> None:
    subject = (Path.start((0, 0))
               .quad_to((25, 40), (50, 0))
               .cubic_to((60, -30), (90, -30), (100, 0)))
    pieces = difference(subject, _box(45, -50, 10, 100))
    assert len(pieces) == 2
    assert isinstance(pieces[0].segments[-1], QuadTo)
    assert isinstance(pieces[1].segments[-1], CubicTo)
    assert pieces[0].last_point().x == pytest.approx(45, abs=0.1)
    assert pieces[1].first_point().x == pytest.approx(55, abs=0.1)


def test_difference_with_open_subtrahend_uses_tolerance() -> None:
    subject = polyline((0, 0), (100, 0))
    eraser = polyline((50, -50), (50, 50))
    pieces = difference(subject, eraser, tolerance=10)
    assert len(pieces) == 2
    assert pieces[0].last_point().x == pytest.approx(45, abs=0.1)
    assert pieces[1].first_point().x == pytest.approx(55, abs=0.1)


def test_difference_of_closed_subject_is_an_area() -> None:
    square = polyline((0, 0), (10, 0), (10, 10), (0, 10)).close()
    pieces = difference(square, _box(5, -5, 10, 20))
    assert pieces
    assert all(p.closed for p in pieces)
    assert bounding_rect(pieces[0]).right() == pytest.approx(5)


def test_difference_is_repeatable() -> None:
    subject = polyline((0, 0), (30, 20), (70, -20), (100, 0))
    area = stroke_to_area(polyline((50, -60), (50, 60)), 40)
    assert difference(subject, area) == difference(subject, area)


def test_difference_of_a_shape_with_itself_is_empty() -> None:
    stroke = polyline((0, 0), (50, 30), (100, 0))
    assert difference(stroke, stroke) == []

    square = polyline((0, 0), (10, 0), (10, 10), (0, 10)).close()
    assert difference(square, to_qpainterpath(square)) == []
