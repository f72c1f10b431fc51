"""Annotation stores: the host document pages the core adds to and removes from.

`MemoryPageStore` keeps annotations in a list. `FitzPageStore` mirrors them
into PyMuPDF ink annotations and stashes the exact path in the annotation's
contents, since the native ink list only holds flattened polylines.
"""

from __future__ import annotations

import logging
from typing import List, Protocol

import fitz  # PyMuPDF
from PyQt5.QtCore import QRectF

from pdf_freedraw.errors import PathDecodeError, StoreError
from pdf_freedraw.models.annotation import Annotation, InkKind
from pdf_freedraw.models.path import Path, decode, encode, to_qpainterpath

logger = logging.getLogger(__name__)


class AnnotationStore(Protocol):
    def add(self, annotation: Annotation) -> None: ...

    def remove(self, annotation: Annotation) -> None: ...

    def current_annotations(self) -> List[Annotation]: ...


class DocumentStore(Protocol):
    def page(self, number: int) -> AnnotationStore: ...


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------
class MemoryPageStore:
    def __init__(self, annotations=()):
        self._annotations = list(annotations)

    def add(self, annotation):
        if annotation not in self._annotations:
            self._annotations.append(annotation)

    def remove(self, annotation):
        if annotation in self._annotations:
            self._annotations.remove(annotation)

    def current_annotations(self):
        return list(self._annotations)

    def __contains__(self, annotation):
        return annotation in self._annotations

    def __len__(self):
        return len(self._annotations)


class MemoryDocumentStore:
    def __init__(self, page_count=None):
        self._pages = {}
        self._page_count = page_count

    def page(self, number):
        if number < 0 or (self._page_count is not None and number >= self._page_count):
            raise IndexError(f"page {number} out of range")
        return self._pages.setdefault(number, MemoryPageStore())


# ---------------------------------------------------------------------------
# PyMuPDF
# ---------------------------------------------------------------------------
_KIND_BY_ANNOT_TYPE = {
    fitz.PDF_ANNOT_INK: Annotation.INK,
    fitz.PDF_ANNOT_HIGHLIGHT: Annotation.HIGHLIGHT,
    fitz.PDF_ANNOT_TEXT: Annotation.NOTE,
    fitz.PDF_ANNOT_FREE_TEXT: Annotation.TEXT,
    fitz.PDF_ANNOT_SQUARE: Annotation.RECT,
}


def _rgb_to_int(rgb):
    return tuple(int(round(c * 255)) for c in rgb)


def _polylines(path):
    """Flatten a path into the point lists an ink annotation stores."""
    lines = []
    for polygon in to_qpainterpath(path).toSubpathPolygons():
        points = [(pt.x(), pt.y()) for pt in polygon]
        if len(points) >= 2:
            lines.append(points)
    return lines


def _native_path(annot):
    """Rebuild a polyline path from an ink annotation's own vertex list."""
    strokes = annot.vertices or []
    for points in strokes:
        if len(points) >= 2:
            path = Path.start(points[0])
            for pt in points[1:]:
                path = path.line_to(pt)
            return path
    return None


class FitzPageStore:
    """Annotation store backed by a PyMuPDF page (page space is y-down points)."""

    def __init__(self, page):
        self._page = page
        self._annotations = []
        self._xrefs = {}
        self._hidden = {}

    @property
    def page(self):
        return self._page

    # -- loading ------------------------------------------------------------
    def load(self):
        """Wrap the page's existing annotations; returns how many were read."""
        for annot in self._page.annots():
            if annot.flags & fitz.PDF_ANNOT_IS_HIDDEN:
                continue
            annotation = self._wrap(annot)
            self._annotations.append(annotation)
            self._xrefs[annotation.id] = annot.xref
        return len(self._annotations)

    def _wrap(self, annot):
        kind = _KIND_BY_ANNOT_TYPE.get(annot.type[0], annot.type[1].lower())
        info = annot.info
        if kind != Annotation.INK:
            return Annotation(kind, self._page.number, QRectF(*_rect_xywh(annot.rect)),
                              title=info.get("title", ""), content=info.get("content", ""))

        path = None
        content = info.get("content", "")
        if content:
            try:
                path = decode(content)
            except PathDecodeError as e:
                logger.warning("annotation xref %s: %s; using native ink list", annot.xref, e)
        if path is None or path.is_empty():
            path = _native_path(annot)
        width = (annot.border or {}).get("width", 1.0)
        if width is None or width <= 0:
            width = 1.0
        stroke_rgb = (annot.colors or {}).get("stroke") or (1.0, 0.0, 0.0)
        opacity = annot.opacity if annot.opacity is not None and annot.opacity >= 0 else 1.0
        color = _rgb_to_int(stroke_rgb) + (int(round(opacity * 255)),)
        try:
            ink_kind = InkKind(info.get("subject") or InkKind.PEN.value)
        except ValueError:
            ink_kind = InkKind.PEN
        if path is None:
            logger.warning("annotation xref %s has no usable path; it cannot be erased", annot.xref)
            return Annotation(Annotation.INK, self._page.number, QRectF(*_rect_xywh(annot.rect)),
                              title=info.get("title", ""))
        return Annotation.ink(path, width, color, ink_kind, self._page.number,
                              title=info.get("title", ""))

    # -- AnnotationStore ----------------------------------------------------
    def add(self, annotation):
        if annotation in self._annotations:
            return
        if annotation.id in self._hidden:
            xref = self._hidden.pop(annotation.id)
            self._set_hidden(xref, False)
            self._xrefs[annotation.id] = xref
            self._annotations.append(annotation)
            return
        page_path = annotation.page_path()
        if not annotation.is_ink() or page_path is None:
            raise StoreError(f"only ink annotations with geometry can be written, got {annotation!r}")
        lines = _polylines(page_path)
        if not lines:
            raise StoreError(f"{annotation!r} has no drawable geometry")
        stroke = annotation.stroke
        r, g, b, a = stroke.effective_color
        annot = self._page.add_ink_annot(lines)
        annot.set_border(width=stroke.width)
        annot.set_colors(stroke=(r / 255.0, g / 255.0, b / 255.0))
        annot.set_opacity(a / 255.0)
        annot.set_info(content=encode(page_path).decode("utf-8"),
                       subject=stroke.kind.value,
                       title=annotation.data.get("title", ""))
        annot.update()
        self._xrefs[annotation.id] = annot.xref
        self._annotations.append(annotation)

    def remove(self, annotation):
        if annotation not in self._annotations:
            return
        self._annotations.remove(annotation)
        xref = self._xrefs.pop(annotation.id, None)
        if xref is None:
            return
        if annotation.page_path() is None:
            # Annotations we cannot rewrite are hidden, so undo can show them again
            self._set_hidden(xref, True)
            self._hidden[annotation.id] = xref
            return
        annot = self._page.load_annot(xref)
        if not annot:
            logger.warning("native annotation xref %s already gone", xref)
            return
        self._page.delete_annot(annot)

    def _set_hidden(self, xref, hidden):
        annot = self._page.load_annot(xref)
        if not annot:
            raise StoreError(f"native annotation xref {xref} is missing")
        if hidden:
            annot.set_flags(annot.flags | fitz.PDF_ANNOT_IS_HIDDEN)
        else:
            annot.set_flags(annot.flags & ~fitz.PDF_ANNOT_IS_HIDDEN)

    def current_annotations(self):
        return list(self._annotations)

    def __contains__(self, annotation):
        return annotation in self._annotations

    def __len__(self):
        return len(self._annotations)


def _rect_xywh(rect):
    return rect.x0, rect.y0, rect.width, rect.height


class FitzDocumentStore:
    """Lazily wraps each page of an open PyMuPDF document."""

    def __init__(self, doc):
        self._doc = doc
        self._pages = {}

    def page(self, number):
        if not 0 <= number < len(self._doc):
            raise IndexError(f"page {number} out of range")
        store = self._pages.get(number)
        if store is None:
            store = FitzPageStore(self._doc[number])
            store.load()
            self._pages[number] = store
        return store
