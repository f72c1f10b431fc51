from __future__ import annotations

import pytest

from pdf_freedraw.config import FreedrawConfig
from pdf_freedraw.coordinates import CoordinateSpace
from pdf_freedraw.session import StrokeSession
from pdf_freedraw.store import MemoryDocumentStore


@pytest.fixture()
def document() -> MemoryDocumentStore:
    return MemoryDocumentStore(page_count=3)


@pytest.fixture()
def space() -> CoordinateSpace:
    return CoordinateSpace()


@pytest.fixture()
def session(document: MemoryDocumentStore) -> StrokeSession:
    return StrokeSession(document, FreedrawConfig())


@pytest.fixture()
def gesture(session: StrokeSession, space: CoordinateSpace):
    """Drive a full start / move... / end gesture and return what `end` returned."""

    def _gesture(points, page: int = 0, gesture_space: CoordinateSpace | None = None):
        assert session.start(points[0], page, gesture_space or space)
        for point in points[1:-1]:
            session.move(point)
        return session.end(points[-1])

    return _gesture


@pytest.fixture()
def signals(session: StrokeSession):
    recorded = {"drawing": [], "preview": []}
    session.drawing_state_changed.connect(recorded["drawing"].append)
    session.preview_changed.connect(recorded["preview"].append)
    return recorded

