"""Per-page undo / redo of annotation mutations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from pdf_freedraw.models.annotation import Annotation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UndoEntry:
    """One committed mutation.

    `(created,)` records a new annotation. `(original, replacement, ...)`
    records a delete-and-replace; the replacement slot holds None when the
    original was removed without anything taking its place.
    """

    annotations: Tuple[Optional[Annotation], ...]

    def __post_init__(self):
        if not self.annotations or self.annotations[0] is None:
            raise ValueError("an undo entry needs at least one annotation")

    @classmethod
    def created(cls, annotation):
        return cls((annotation,))

    @classmethod
    def replaced(cls, original, *replacements):
        return cls((original,) + (tuple(replacements) or (None,)))

    @property
    def is_creation(self):
        return len(self.annotations) == 1

    @property
    def original(self):
        return self.annotations[0]

    @property
    def replacements(self):
        return tuple(a for a in self.annotations[1:] if a is not None)

    def apply(self, store):
        if self.is_creation:
            store.add(self.original)
            return
        store.remove(self.original)
        for annotation in self.replacements:
            store.add(annotation)

    def revert(self, store):
        if self.is_creation:
            store.remove(self.original)
            return
        for annotation in self.replacements:
            store.remove(annotation)
        store.add(self.original)


class UndoHistory(QObject):
    """Undo and redo stacks kept separately for every page.

    `max_entries` caps each page's undo stack (0 = unbounded); the oldest
    entry is dropped on overflow. `availability_changed(can_undo, can_redo)`
    fires only when the current page's pair actually changes.
    """

    availability_changed = pyqtSignal(bool, bool)

    def __init__(self, max_entries=10, parent=None):
        super().__init__(parent)
        self._undo = {}
        self._redo = {}
        self.max_entries = max_entries
        self._current_page = 0
        self._available = (False, False)

    @property
    def max_entries(self):
        return self._max_entries

    @max_entries.setter
    def max_entries(self, value):
        """Lowering the cap trims every page's undo stack, oldest first."""
        self._max_entries = value
        if value:
            for stack in self._undo.values():
                del stack[:max(0, len(stack) - value)]

    # -- queries ------------------------------------------------------------
    def can_undo(self, page=None):
        return bool(self._undo.get(self._page(page)))

    def can_redo(self, page=None):
        return bool(self._redo.get(self._page(page)))

    def undo_entries(self, page=None):
        return list(self._undo.get(self._page(page), ()))

    def redo_entries(self, page=None):
        return list(self._redo.get(self._page(page), ()))

    @property
    def current_page(self):
        return self._current_page

    def set_current_page(self, page):
        self._current_page = page
        self._refresh()

    # -- mutations ----------------------------------------------------------
    def push(self, page, entry):
        stack = self._undo.setdefault(page, [])
        stack.append(entry)
        if self.max_entries and len(stack) > self.max_entries:
            del stack[:len(stack) - self.max_entries]
        self._redo.pop(page, None)
        self._current_page = page
        self._refresh()

    def undo(self, page, store):
        """Revert the newest entry of `page`; returns it, or None when empty."""
        stack = self._undo.get(page)
        if not stack:
            return None
        entry = stack.pop()
        entry.revert(store)
        self._redo.setdefault(page, []).append(entry)
        logger.debug("undo on page %s: %s", page, entry)
        self._current_page = page
        self._refresh()
        return entry

    def redo(self, page, store):
        stack = self._redo.get(page)
        if not stack:
            return None
        entry = stack.pop()
        entry.apply(store)
        self._undo.setdefault(page, []).append(entry)
        logger.debug("redo on page %s: %s", page, entry)
        self._current_page = page
        self._refresh()
        return entry

    def clear(self, page=None):
        if page is None:
            self._undo.clear()
            self._redo.clear()
        else:
            self._undo.pop(page, None)
            self._redo.pop(page, None)
        self._refresh()

    # -- helpers ------------------------------------------------------------
    def _page(self, page):
        return self._current_page if page is None else page

    def _refresh(self):
        state = (self.can_undo(), self.can_redo())
        if state != self._available:
            self._available = state
            self.availability_changed.emit(*state)
