"""錯誤與警告記錄。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorLevel(str, Enum):
    INFO = "I"
    RECOVERABLE = "W"


class ErrorKind(str, Enum):
    ADD = "add"
    DUPLICATE = "duplicate"
    REFRESH = "refresh"


@dataclass
class ProcessError:
    """批次中單一項目的非致命問題（例如拖放的某個路徑加入失敗）。"""

    code: str
    level: ErrorLevel
    kind: ErrorKind
    message: str
    source: Optional[str] = None
