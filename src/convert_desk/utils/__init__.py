"""工具模組。"""

from .error_handler import ErrorHandler
from .errors import (
    CommandError,
    ConvertDeskError,
    DuplicateFileError,
    InvalidUrlError,
    NoOutputDirectoryError,
    SettingsValidationError,
    ValidationError,
)
from .url_utils import normalize_url, validate_url

__all__ = [
    "ErrorHandler",
    "CommandError",
    "ConvertDeskError",
    "DuplicateFileError",
    "InvalidUrlError",
    "NoOutputDirectoryError",
    "SettingsValidationError",
    "ValidationError",
    "normalize_url",
    "validate_url",
]
