"""把拖放、檔案選擇器與 URL 輸入轉成新增指令。"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from ..models import ErrorKind, FileEntry
from ..utils.error_handler import ErrorHandler
from ..utils.errors import CommandError, DuplicateFileError, InvalidUrlError
from ..utils.logger import get_logger
from ..utils.url_utils import normalize_url, validate_url
from .file_list import FileListSynchronizer

# 部分平台一次放下會送出兩次 drop；批次結束後在此時間內的 drop 一律忽略。
# 單純事件去重約 100ms 即可，含 add + refresh 往返時需要 300ms 以上。
DROP_COOLDOWN_SEC = 0.3


class DragPhase(str, Enum):
    ENTER = "enter"
    OVER = "over"
    DROP = "drop"
    LEAVE = "leave"


@dataclass(frozen=True)
class DragDropEvent:
    phase: DragPhase
    paths: tuple[str, ...] = ()


class DropGate:
    """拖放批次的重入閂鎖：批次進行中或冷卻期間拒絕新的 drop。"""

    def __init__(
        self,
        cooldown_sec: float = DROP_COOLDOWN_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldown_sec = cooldown_sec
        self._clock = clock
        self._busy = False
        self._released_at: Optional[float] = None

    @property
    def locked(self) -> bool:
        if self._busy:
            return True
        if self._released_at is None:
            return False
        return self._clock() - self._released_at < self.cooldown_sec

    def try_acquire(self) -> bool:
        if self.locked:
            return False
        self._busy = True
        return True

    def release(self) -> None:
        self._busy = False
        self._released_at = self._clock()


@dataclass
class IngestionReport:
    requested: list[str]
    added: list[FileEntry] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    errors: ErrorHandler = field(default_factory=ErrorHandler)
    ignored: bool = False

    @property
    def failed_count(self) -> int:
        return len(self.errors.get_by_kind(ErrorKind.ADD))


class IngestionPipeline:
    """每個不同的檔案恰好送出一次新增指令。

    一批 N 個路徑會同時送出 N 個新增指令，全部結束（不論成敗）後只
    refresh 一次。後端對重複路徑的拒絕視為正常結果，不回報錯誤。
    """

    def __init__(
        self,
        file_list: FileListSynchronizer,
        gate: Optional[DropGate] = None,
        logger=None,
    ) -> None:
        self.file_list = file_list
        self.gate = gate or DropGate()
        self.logger = logger or get_logger(self.__class__.__name__)
        self.drag_active = False

    async def handle_drag_event(self, event: DragDropEvent) -> Optional[IngestionReport]:
        if event.phase in (DragPhase.ENTER, DragPhase.OVER):
            self.drag_active = True
            return None
        if event.phase is DragPhase.LEAVE:
            self.drag_active = False
            return None

        if not self.gate.try_acquire():
            self.logger.info(f"忽略重複的 drop 事件（{len(event.paths)} 個路徑）")
            return IngestionReport(requested=list(event.paths), ignored=True)
        try:
            return await self.ingest_paths(event.paths)
        finally:
            self.drag_active = False
            self.gate.release()

    async def ingest_paths(self, paths: Iterable[str]) -> IngestionReport:
        report = IngestionReport(requested=list(paths))
        if not report.requested:
            return report

        results = await asyncio.gather(
            *(self.file_list.issue_add_from_path(path) for path in report.requested),
            return_exceptions=True,
        )
        for path, result in zip(report.requested, results):
            if isinstance(result, DuplicateFileError):
                report.duplicates.append(path)
                report.errors.add_info(result.code, result.message, ErrorKind.DUPLICATE, source=path)
            elif isinstance(result, CommandError):
                self.logger.warning(f"無法加入檔案 {path}: {result.message}")
                report.errors.add_command_error(result, source=path)
            elif isinstance(result, BaseException):
                raise result
            else:
                report.added.append(result)

        try:
            await self.file_list.refresh()
        except CommandError as exc:
            report.errors.add_warning("REFRESH_FAILED", exc.message, ErrorKind.REFRESH)
        self.logger.info(
            f"加入 {len(report.added)} 個檔案，重複 {len(report.duplicates)}，失敗 {report.failed_count}"
        )
        return report

    async def add_url(self, text: str) -> FileEntry:
        if not validate_url(text):
            raise InvalidUrlError(text)
        return await self.file_list.add_from_url(normalize_url(text))


class UrlDialog:
    """「由 URL 加入」對話框的狀態。

    驗證失敗或後端失敗時對話框保持開啟，輸入內容保留，錯誤訊息可供
    顯示後重試；成功時關閉並清空。
    """

    def __init__(self, pipeline: IngestionPipeline) -> None:
        self.pipeline = pipeline
        self.is_open = False
        self.text = ""
        self.error: Optional[str] = None
        self.is_submitting = False

    def open(self) -> None:
        self.is_open = True
        self.error = None

    def close(self) -> None:
        self.is_open = False
        self.text = ""
        self.error = None

    def set_text(self, value: str) -> None:
        self.text = value
        self.error = None

    async def submit(self) -> Optional[FileEntry]:
        if self.is_submitting:
            return None
        self.is_submitting = True
        self.error = None
        try:
            entry = await self.pipeline.add_url(self.text)
        except InvalidUrlError:
            self.error = "Please enter a valid URL"
            return None
        except CommandError as exc:
            self.error = exc.message
            return None
        finally:
            self.is_submitting = False
        self.close()
        return entry
