"""資料模型模組。"""

from .conversion_result import USE_SOURCE_DIR, ConversionRequest, ConversionResult
from .conversion_settings import ConversionSettings, ImageFormat, available_formats
from .conversion_status import ConversionStatus, StatusKind
from .error_record import ErrorKind, ErrorLevel, ProcessError
from .file_entry import ExifData, FileEntry
from .progress_event import PROGRESS_EVENT, ConversionProgress, ProgressStatus

__all__ = [
    "USE_SOURCE_DIR",
    "ConversionRequest",
    "ConversionResult",
    "ConversionSettings",
    "ImageFormat",
    "available_formats",
    "ConversionStatus",
    "StatusKind",
    "ErrorKind",
    "ErrorLevel",
    "ProcessError",
    "ExifData",
    "FileEntry",
    "PROGRESS_EVENT",
    "ConversionProgress",
    "ProgressStatus",
]
