"""錯誤收集與報告工具。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..models.error_record import ErrorKind, ErrorLevel, ProcessError
from .errors import CommandError


@dataclass
class ErrorHandler:
    """集中管理一個批次內的錯誤與警告。"""

    errors: List[ProcessError] = field(default_factory=list)

    def add(self, error: ProcessError) -> None:
        self.errors.append(error)

    def add_info(self, code: str, message: str, kind: ErrorKind, source: Optional[str] = None) -> None:
        self.add(ProcessError(code, ErrorLevel.INFO, kind, message, source))

    def add_warning(self, code: str, message: str, kind: ErrorKind, source: Optional[str] = None) -> None:
        self.add(ProcessError(code, ErrorLevel.RECOVERABLE, kind, message, source))

    def add_command_error(self, exc: CommandError, source: Optional[str] = None) -> None:
        self.add_warning(exc.code, exc.message, ErrorKind.ADD, source)

    def get_by_kind(self, kind: ErrorKind) -> List[ProcessError]:
        return [error for error in self.errors if error.kind == kind]

    def has_errors(self) -> bool:
        return any(error.level != ErrorLevel.INFO for error in self.errors)
