"""核心同步模組。"""

from .backend import Backend, DirectoryPicker, EventHandler, Unlisten
from .dispatcher import BatchOutcome, ConversionDispatcher
from .file_list import FileListSynchronizer
from .ingestion import (
    DROP_COOLDOWN_SEC,
    DragDropEvent,
    DragPhase,
    DropGate,
    IngestionPipeline,
    IngestionReport,
    UrlDialog,
)
from .overlay import FileRow, build_rows
from .progress_reducer import ProgressReducer

__all__ = [
    "Backend",
    "DirectoryPicker",
    "EventHandler",
    "Unlisten",
    "BatchOutcome",
    "ConversionDispatcher",
    "FileListSynchronizer",
    "DROP_COOLDOWN_SEC",
    "DragDropEvent",
    "DragPhase",
    "DropGate",
    "IngestionPipeline",
    "IngestionReport",
    "UrlDialog",
    "FileRow",
    "build_rows",
    "ProgressReducer",
]
