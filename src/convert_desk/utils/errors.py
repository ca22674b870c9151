"""例外類別。"""

from __future__ import annotations

from typing import Optional


class ConvertDeskError(Exception):
    """所有本套件例外的基底。"""


class ValidationError(ConvertDeskError):
    """輸入在本地端即被拒絕，不會送到後端。"""


class SettingsValidationError(ValidationError):
    pass


class InvalidUrlError(ValidationError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid URL: {value!r}")
        self.value = value


class NoOutputDirectoryError(ValidationError):
    def __init__(self) -> None:
        super().__init__("No output directory selected")


class CommandError(ConvertDeskError):
    """後端指令失敗；message 可直接顯示給使用者。"""

    def __init__(self, command: str, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.command = command
        self.message = message
        self.code = code or "COMMAND_FAILED"

    def __str__(self) -> str:
        return self.message


class DuplicateFileError(CommandError):
    def __init__(self, path: str) -> None:
        super().__init__("add_file_from_path", f"File already added: {path}", code="DUPLICATE")
        self.path = path
