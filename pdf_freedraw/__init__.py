"""Free-hand ink drawing and splitting eraser for PDF page annotations."""

from .config import FreedrawConfig, load_config, save_config
from .coordinates import CoordinateSpace
from .errors import FreedrawError, PathDecodeError, PathError, StoreError
from .history import UndoEntry, UndoHistory
from .models import Annotation, InkKind, Path, Point, Stroke
from .session import EraseOperation, PendingSplit, Preview, SessionState, StrokeSession
from .store import FitzDocumentStore, FitzPageStore, MemoryDocumentStore, MemoryPageStore

__all__ = [
    "FreedrawConfig", "load_config", "save_config",
    "CoordinateSpace",
    "FreedrawError", "PathDecodeError", "PathError", "StoreError",
    "UndoEntry", "UndoHistory",
    "Annotation", "InkKind", "Path", "Point", "Stroke",
    "EraseOperation", "PendingSplit", "Preview", "SessionState", "StrokeSession",
    "FitzDocumentStore", "FitzPageStore", "MemoryDocumentStore", "MemoryPageStore",
]
