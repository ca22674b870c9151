"""單一檔案的暫態轉換狀態。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StatusKind(str, Enum):
    IDLE = "idle"
    CONVERTING = "converting"
    COMPLETED = "completed"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ConversionStatus:
    kind: StatusKind
    message: Optional[str] = None

    @classmethod
    def idle(cls) -> "ConversionStatus":
        return cls(StatusKind.IDLE)

    @classmethod
    def converting(cls) -> "ConversionStatus":
        return cls(StatusKind.CONVERTING)

    @classmethod
    def completed(cls) -> "ConversionStatus":
        return cls(StatusKind.COMPLETED)

    @classmethod
    def error(cls, message: str) -> "ConversionStatus":
        return cls(StatusKind.ERROR, message)

    @classmethod
    def skipped(cls, reason: str) -> "ConversionStatus":
        return cls(StatusKind.SKIPPED, reason)

    @property
    def is_terminal(self) -> bool:
        return self.kind in {StatusKind.COMPLETED, StatusKind.ERROR, StatusKind.SKIPPED}
