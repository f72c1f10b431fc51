from __future__ import annotations

import math

import pytest

from pdf_freedraw.coordinates import CoordinateSpace
from pdf_freedraw.models.annotation import Annotation, InkKind
from pdf_freedraw.models.path import CubicTo, Point
from pdf_freedraw.session import Preview, SessionState


def _points_of(annotation: Annotation):
    return annotation.page_path().all_points()


def test_pen_stroke_commits_one_annotation(session, document, gesture, signals) -> None:
    annotation = gesture([(10, 10), (30, 10), (50, 10), (60, 10)])

    assert isinstance(annotation, Annotation)
    assert document.page(0).current_annotations() == [annotation]
    assert annotation.stroke.kind == InkKind.PEN
    assert annotation.stroke.width == 3
    points = _points_of(annotation)
    assert [p.x for p in points] == pytest.approx([10, 30, 50, 60])
    assert [p.y for p in points] == pytest.approx([10, 10, 10, 10])
    assert annotation.bounds.left() == pytest.approx(8.5)
    assert annotation.bounds.right() == pytest.approx(61.5)
    assert signals["drawing"] == [True, False]
    assert signals["preview"][-1] is None
    assert session.state is SessionState.IDLE


def test_preview_follows_the_stroke_in_overlay_space(session, signals) -> None:
    space = CoordinateSpace(scale=2.0, overlay_offset=(5, 5))
    session.start((10, 10), 0, space)
    session.move((40, 10))

    preview = signals["preview"][-1]
    assert isinstance(preview, Preview)
    assert preview.width == 6
    assert preview.color == (255, 0, 0, 255)
    assert preview.overlay_paths[0].all_points() == [Point(5, 5), Point(35, 5)]
    session.cancel()


def test_stroke_is_stored_in_page_space(session, document) -> None:
    space = CoordinateSpace(scale=2.0, page_origin=(100, 100))
    session.start((100, 100), 0, space)
    session.move((140, 100))
    annotation = session.end((180, 100))

    points = _points_of(annotation)
    assert [p.x for p in points] == pytest.approx([0, 20, 40])
    assert [p.y for p in points] == pytest.approx([0, 0, 0])


def test_short_gesture_is_discarded(session, document, gesture, signals) -> None:
    assert gesture([(10, 10), (12, 10), (14, 11)]) is None
    assert document.page(0).current_annotations() == []
    assert signals["drawing"] == []
    assert not session.can_undo(0)


@pytest.mark.parametrize("kwargs", [{"touch_count": 2}, {"host_ready": False}])
def test_start_preconditions(session, space, kwargs) -> None:
    assert not session.start((0, 0), 0, space, **kwargs)
    assert session.state is SessionState.IDLE


def test_start_on_missing_page_is_rejected(session, space, caplog) -> None:
    assert not session.start((0, 0), 7, space)
    assert "no page 7" in caplog.text


def test_second_start_is_rejected(session, space) -> None:
    assert session.start((0, 0), 0, space)
    assert not session.start((5, 5), 0, space)
    session.cancel()


def test_undo_and_redo_of_a_stroke(session, document, gesture) -> None:
    annotation = gesture([(10, 10), (40, 10), (80, 10)])
    assert session.can_undo(0) and not session.can_redo(0)

    session.undo(0)
    assert document.page(0).current_annotations() == []
    assert session.can_redo(0)

    session.redo(0)
    assert document.page(0).current_annotations() == [annotation]


def test_histories_are_per_page(session, document, gesture) -> None:
    first = gesture([(10, 10), (40, 10)], page=0)
    second = gesture([(10, 10), (40, 10)], page=1)

    session.undo(1)
    assert document.page(1).current_annotations() == []
    assert document.page(0).current_annotations() == [first]
    assert second not in document.page(0)


def test_undo_during_a_gesture_is_ignored(session, document, gesture, space) -> None:
    gesture([(10, 10), (40, 10)])
    session.start((0, 50), 0, space)
    assert session.undo(0) is None
    session.cancel()
    assert len(document.page(0)) == 1


def test_cancel_commits_nothing(session, document, space, signals) -> None:
    session.start((10, 10), 0, space)
    session.move((50, 10))
    session.cancel()
    assert document.page(0).current_annotations() == []
    assert signals["drawing"] == [True, False]
    assert session.state is SessionState.IDLE


def test_highlighter_gets_translucent_alpha(session, gesture) -> None:
    session.configure(ink_kind=InkKind.HIGHLIGHTER, color=(255, 255, 0, 255), width=12)
    annotation = gesture([(10, 10), (40, 10), (80, 10)])
    assert annotation.stroke.kind == InkKind.HIGHLIGHTER
    assert annotation.stroke.alpha == 0.3
    assert annotation.stroke.effective_color[3] < 255


def test_closed_loop_becomes_an_oval(session, gesture) -> None:
    session.configure(convert_closed_curves_to_ovals=True)
    points = [(100 + 30 * math.cos(2 * math.pi * k / 16), 100 + 30 * math.sin(2 * math.pi * k / 16))
              for k in range(16)]
    annotation = gesture(points + [points[0]])

    path = annotation.page_path()
    assert len(path) == 5
    assert all(isinstance(s, CubicTo) for s in path.segments[1:])
    assert annotation.bounds.center().x() == pytest.approx(100, abs=1)


def test_loop_is_kept_when_oval_option_is_off(session, gesture) -> None:
    points = [(100 + 30 * math.cos(2 * math.pi * k / 16), 100 + 30 * math.sin(2 * math.pi * k / 16))
              for k in range(16)]
    annotation = gesture(points + [points[0]])
    assert len(annotation.page_path()) == 17


def test_configure_validates_and_resizes_history(session) -> None:
    session.configure(max_undo_entries=3)
    assert session.history.max_entries == 3
    with pytest.raises(ValueError):
        session.configure(width=0)


def test_configure_trims_history_to_the_new_cap(session, gesture) -> None:
    for y in (10, 30, 50, 70):
        gesture([(10, y), (40, y), (80, y)])
    assert len(session.history.undo_entries(0)) == 4

    session.configure(max_undo_entries=2)

    assert len(session.history.undo_entries(0)) == 2
