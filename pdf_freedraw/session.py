"""Live free-draw gesture handling: pen, highlighter and splitting eraser.

A StrokeSession receives `start / move / end / cancel` from the host in that
order, one gesture at a time. Drawing gestures become ink annotations when
they end. Eraser gestures remove annotations they touch; ink annotations are
split instead, by subtracting the widened eraser path from their stroke and
replacing the original with what survives.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from pdf_freedraw.config import FreedrawConfig
from pdf_freedraw.coordinates import map_path, map_point
from pdf_freedraw.geometry import difference, hit_test, rects_intersect, stroke_to_area
from pdf_freedraw.history import UndoEntry, UndoHistory
from pdf_freedraw.models.annotation import Annotation, InkKind, inflate, stroke_bounds
from pdf_freedraw.models.path import Path, bounding_rect, open_oval_in, resembles_oval

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTING = "committing"


@dataclass(frozen=True)
class Preview:
    """What the overlay should show right now; replaces any previous preview."""

    overlay_paths: Tuple[Path, ...] = ()
    color: Tuple[int, int, int, int] = (0, 0, 0, 0)
    width: float = 0.0


@dataclass(frozen=True)
class EraseOperation:
    """One committed erase step: `removed` left the page, `replacements` took its place."""

    removed: Annotation
    replacements: Tuple[Annotation, ...] = ()

    @property
    def added(self):
        return self.replacements[0] if self.replacements else None


@dataclass
class PendingSplit:
    """The ink annotation currently under the eraser, with its last computed remainder."""

    target_id: str
    annotation: Annotation
    original_path: Path                    # overlay space
    original_color: Tuple[int, int, int, int]
    difference: List[Path] = field(default_factory=list)


def erase_difference(original_path, eraser_path, eraser_width, tolerance):
    """Remainder of `original_path` after the eraser stroke, both in overlay space.

    Always recomputed from the untouched original, so the same eraser prefix
    gives the same answer no matter how many steps led up to it.
    """
    return difference(original_path, stroke_to_area(eraser_path, eraser_width), tolerance)


class StrokeSession(QObject):
    """State machine for one drawing surface: IDLE -> ACTIVE -> COMMITTING -> IDLE."""

    drawing_state_changed = pyqtSignal(bool)
    preview_changed = pyqtSignal(object)    # Preview, or None when cleared

    def __init__(self, document, config=None, history=None, parent=None):
        super().__init__(parent)
        self._document = document
        self._config = config or FreedrawConfig()
        self.history = history or UndoHistory(max_entries=self._config.max_undo_entries)
        self._reset()

    # -- configuration ------------------------------------------------------
    @property
    def config(self):
        return self._config

    def configure(self, **changes):
        """Apply validated config changes; the current gesture keeps its snapshot."""
        self._config = self._config.updated(**changes)
        self.history.max_entries = self._config.max_undo_entries
        return self._config

    @property
    def state(self):
        return self._state

    @property
    def pending_split(self):
        return self._pending

    # -- gesture entry points -------------------------------------------------
    def start(self, point, page_number, space, touch_count=1, host_ready=True):
        """Begin a gesture at a device-space point; False when preconditions fail."""
        if self._state is not SessionState.IDLE:
            logger.warning("start ignored: a gesture is already in progress")
            return False
        if touch_count != 1:
            logger.warning("start ignored: %d simultaneous touches", touch_count)
            return False
        if not host_ready:
            logger.warning("start ignored: host page or view is not ready")
            return False
        try:
            store = self._document.page(page_number)
        except (IndexError, KeyError) as e:
            logger.warning("start ignored: no page %s (%s)", page_number, e)
            return False

        self._gesture = self._config
        self._store = store
        self._page_number = page_number
        self._space = space
        self._last_point = point
        self._distance = 0.0
        self._confirmed = False
        self._page_path = Path.start(map_point(space.device_to_page, point))
        self._overlay_path = Path.start(map_point(space.device_to_overlay, point))
        self._state = SessionState.ACTIVE
        self.history.set_current_page(page_number)
        return True

    def move(self, point):
        if self._state is not SessionState.ACTIVE:
            return
        if not self._advance(point):
            return
        if self._gesture.ink_kind == InkKind.ERASER:
            self._erase_step(finishing=False)
        else:
            self._publish(Preview((self._overlay_path,), self._stroke_color(),
                                  self._gesture.width * self._space.scale))

    def end(self, point):
        """Finish the gesture.

        Returns the new Annotation for a drawing gesture, every EraseOperation
        committed during an eraser gesture, or None when nothing was drawn.
        """
        if self._state is not SessionState.ACTIVE:
            return None
        self._advance(point)
        self._state = SessionState.COMMITTING
        try:
            if not self._confirmed:
                return None
            if self._gesture.ink_kind == InkKind.ERASER:
                self._erase_step(finishing=True)
                return list(self._operations)
            return self._commit_stroke()
        finally:
            self._finish(self._confirmed)

    def cancel(self):
        """Drop the gesture without committing it (e.g. a system interruption)."""
        if self._state is SessionState.IDLE:
            return
        if self._pending is not None:
            self._pending.annotation.hidden = False
        self._finish(True)

    # -- undo / redo ----------------------------------------------------------
    def undo(self, page_number):
        if self._state is not SessionState.IDLE:
            logger.warning("undo ignored while a gesture is in progress")
            return None
        return self.history.undo(page_number, self._document.page(page_number))

    def redo(self, page_number):
        if self._state is not SessionState.IDLE:
            logger.warning("redo ignored while a gesture is in progress")
            return None
        return self.history.redo(page_number, self._document.page(page_number))

    def can_undo(self, page_number=None):
        return self.history.can_undo(page_number)

    def can_redo(self, page_number=None):
        return self.history.can_redo(page_number)

    # -- tracking -------------------------------------------------------------
    def _advance(self, point):
        """Accumulate travel; extend both paths once the gesture is confirmed."""
        self._distance += _distance(self._last_point, point)
        self._last_point = point
        if self._distance < self._gesture.min_gesture_distance:
            return False
        if not self._confirmed:
            self._confirmed = True
            self.drawing_state_changed.emit(True)
        page_point = map_point(self._space.device_to_page, point)
        if page_point != self._page_path.last_point():
            self._page_path = self._page_path.line_to(page_point)
            self._overlay_path = self._overlay_path.line_to(
                map_point(self._space.device_to_overlay, point))
        return True

    def _stroke_color(self):
        r, g, b, a = self._gesture.color
        alpha = self._gesture.stroke_alpha()
        if alpha is not None:
            a = int(round(alpha * 255))
        return (r, g, b, a)

    # -- drawing --------------------------------------------------------------
    def _commit_stroke(self):
        cfg = self._gesture
        path = self._page_path
        bounds = stroke_bounds(path, cfg.width)
        if cfg.convert_closed_curves_to_ovals and resembles_oval(
                path, cfg.oval_end_tolerance, cfg.oval_step_tolerance):
            path = open_oval_in(bounds)
        annotation = Annotation.ink(path, cfg.width, cfg.color, cfg.ink_kind,
                                    self._page_number, alpha=cfg.stroke_alpha(),
                                    bounds=bounds)
        self._store.add(annotation)
        self.history.push(self._page_number, UndoEntry.created(annotation))
        logger.debug("committed %s stroke %r", cfg.ink_kind.value, annotation)
        return annotation

    # -- erasing --------------------------------------------------------------
    def _eraser_width(self):
        return self._gesture.eraser_width(self._space.scale)

    def _erase_step(self, finishing):
        """Run one eraser step against every annotation on the page."""
        operations = []
        cfg = self._gesture
        page_point = self._page_path.last_point()
        reach = self._space.page_length(self._eraser_width()) / 2.0
        eraser_rect = inflate(bounding_rect(self._page_path), reach)

        if self._pending is not None and rects_intersect(self._pending.annotation.bounds, eraser_rect):
            try:
                self._update_split(self._pending)
            except Exception:
                logger.exception("keeping the previous remainder of %r", self._pending.annotation)

        started_split = False
        for annotation in self._store.current_annotations():
            if self._pending is not None and annotation is self._pending.annotation:
                continue
            try:
                if not rects_intersect(annotation.bounds, eraser_rect):
                    continue
                if not self._hits(annotation, page_point):
                    continue
                if not annotation.is_ink() or not cfg.split_ink_on_erase:
                    operations.append(self._remove_whole(annotation))
                    continue
                if started_split:
                    continue
                if self._pending is not None:
                    self._finalize_into(operations)
                self._begin_split(annotation)
                started_split = True
            except Exception:
                logger.exception("skipping %r during erase", annotation)

        if finishing and self._pending is not None:
            self._finalize_into(operations)

        self._operations.extend(operations)
        if self._pending is not None:
            width = self._pending.annotation.stroke.width * self._space.scale
            self._publish(Preview(tuple(self._pending.difference),
                                  self._pending.original_color, width))
        else:
            self._publish(Preview())
        return operations

    def _hits(self, annotation, page_point):
        if not annotation.is_ink():
            return annotation.contains(page_point)
        path = annotation.page_path()
        if path is None:
            return False
        tolerance = max(self._gesture.hit_tolerance, annotation.stroke.width)
        return hit_test(path, page_point, tolerance)

    def _remove_whole(self, annotation):
        self._store.remove(annotation)
        self.history.push(self._page_number, UndoEntry.replaced(annotation))
        logger.debug("erased %r", annotation)
        return EraseOperation(annotation)

    def _begin_split(self, annotation):
        overlay_path = map_path(self._space.page_to_overlay, annotation.page_path())
        pending = PendingSplit(annotation.id, annotation, overlay_path,
                               annotation.stroke.effective_color)
        self._update_split(pending)
        annotation.hidden = True
        self._pending = pending

    def _update_split(self, pending):
        pending.difference = erase_difference(pending.original_path, self._overlay_path,
                                              self._eraser_width(),
                                              self._gesture.hit_tolerance)

    def _finalize_into(self, operations):
        target = self._pending.annotation
        try:
            op = self._finalize_split()
        except Exception:
            logger.exception("could not commit erase of %r", target)
            return
        if op is not None:
            operations.append(op)

    def _finalize_split(self):
        """Commit the pending split: original out, surviving pieces in, one undo entry."""
        pending, self._pending = self._pending, None
        original = pending.annotation
        original.hidden = False
        pieces = pending.difference
        if len(pieces) == 1 and pieces[0] == pending.original_path:
            return None
        if not self._gesture.keep_all_erase_pieces:
            pieces = pieces[:1]
        to_page = self._space.overlay_to_page
        replacements = tuple(original.replacement(map_path(to_page, piece)) for piece in pieces)
        added = []
        try:
            for replacement in replacements:
                self._store.add(replacement)
                added.append(replacement)
        except Exception:
            for replacement in added:
                self._store.remove(replacement)
            raise
        self._store.remove(original)
        self.history.push(self._page_number, UndoEntry.replaced(original, *replacements))
        logger.debug("split %r into %d piece(s)", original, len(replacements))
        return EraseOperation(original, replacements)

    # -- helpers --------------------------------------------------------------
    def _publish(self, preview):
        self.preview_changed.emit(preview)

    def _finish(self, notify):
        self.preview_changed.emit(None)
        self._reset()
        if notify:
            self.drawing_state_changed.emit(False)

    def _reset(self):
        self._state = SessionState.IDLE
        self._gesture = self._config
        self._store = None
        self._page_number = None
        self._space = None
        self._last_point = None
        self._distance = 0.0
        self._confirmed = False
        self._page_path = Path()
        self._overlay_path = Path()
        self._pending = None
        self._operations = []


def _distance(a, b):
    return ((b[0] - a[0]) ** 2 + (b[1] - a[1]) ** 2) ** 0.5
