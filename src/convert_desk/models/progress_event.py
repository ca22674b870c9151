"""轉換進度事件模型（`conversion-progress` 事件的內容）。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

PROGRESS_EVENT = "conversion-progress"


class ProgressStatus(str, Enum):
    CONVERTING = "converting"
    COMPLETED = "completed"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ConversionProgress:
    file_id: str
    file_name: str
    status: ProgressStatus
    error_message: Optional[str] = None
    saved_path: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ConversionProgress":
        return cls(
            file_id=str(payload["file_id"]),
            file_name=str(payload.get("file_name", "")),
            status=ProgressStatus(str(payload["status"]).lower()),
            error_message=payload.get("error_message"),
            saved_path=payload.get("saved_path"),
        )

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "file_id": self.file_id,
            "file_name": self.file_name,
            "status": self.status.value,
        }
        if self.error_message is not None:
            payload["error_message"] = self.error_message
        if self.saved_path is not None:
            payload["saved_path"] = self.saved_path
        return payload
