"""把 `conversion-progress` 事件流歸納成每個檔案的暫態狀態。"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

from ..models import (
    PROGRESS_EVENT,
    ConversionProgress,
    ConversionStatus,
    FileEntry,
    ProgressStatus,
)
from ..utils.errors import CommandError
from ..utils.logger import get_logger
from .backend import Backend, Unlisten
from .file_list import FileListSynchronizer


class ProgressReducer:
    """每個檔案 id 的狀態機：Idle → Converting → {Completed, Error, Skipped}。

    狀態存放在與檔案清單分開的 map 中，只在讀取時與清單合併。新的
    Converting 事件會清掉該 id 先前的終止標記。檔案從清單移除時，
    其狀態一併清除。
    """

    def __init__(self, file_list: FileListSynchronizer, logger=None) -> None:
        self.file_list = file_list
        self.logger = logger or get_logger(self.__class__.__name__)
        self._converting: set[str] = set()
        self._completed: dict[str, Optional[str]] = {}
        self._errors: dict[str, str] = {}
        self._skipped: dict[str, str] = {}
        self._refresh_dirty = False
        self._refresh_task: Optional[asyncio.Task] = None
        self._unlisten: Optional[Unlisten] = None
        self._unsubscribe_list = file_list.subscribe(self._on_list_changed)

    @property
    def converting(self) -> frozenset[str]:
        return frozenset(self._converting)

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    @property
    def skipped(self) -> dict[str, str]:
        return dict(self._skipped)

    @property
    def is_converting(self) -> bool:
        return bool(self._converting)

    def saved_path(self, file_id: str) -> Optional[str]:
        return self._completed.get(file_id)

    def attach(self, backend: Backend) -> None:
        self.detach()
        self._unlisten = backend.listen(PROGRESS_EVENT, self.handle_payload)

    def detach(self) -> None:
        if self._unlisten is not None:
            self._unlisten()
            self._unlisten = None

    def close(self) -> None:
        self.detach()
        self._unsubscribe_list()

    def handle_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            event = ConversionProgress.from_payload(payload)
        except (KeyError, ValueError) as exc:
            self.logger.warning(f"忽略無法解析的進度事件 {dict(payload)!r}: {exc}")
            return
        self.apply(event)

    def apply(self, event: ConversionProgress) -> None:
        file_id = event.file_id
        if event.status is ProgressStatus.CONVERTING:
            self._clear_annotations(file_id)
            self._converting.add(file_id)
            return

        self._converting.discard(file_id)
        if event.status is ProgressStatus.COMPLETED:
            self._completed[file_id] = event.saved_path
            self._request_refresh()
        elif event.status is ProgressStatus.ERROR:
            message = event.error_message or "Unknown error"
            self._errors[file_id] = message
            self.logger.warning(f"轉換失敗 {event.file_name}: {message}")
        elif event.status is ProgressStatus.SKIPPED:
            reason = event.error_message or "Skipped"
            self._skipped[file_id] = reason
            self.logger.info(f"略過 {event.file_name}: {reason}")

    def status_of(self, file_id: str, entry: Optional[FileEntry] = None) -> ConversionStatus:
        if file_id in self._converting:
            return ConversionStatus.converting()
        if file_id in self._errors:
            return ConversionStatus.error(self._errors[file_id])
        if file_id in self._skipped:
            return ConversionStatus.skipped(self._skipped[file_id])
        if file_id in self._completed or (entry is not None and entry.converted):
            return ConversionStatus.completed()
        return ConversionStatus.idle()

    async def settle(self) -> None:
        """等待由 Completed 事件觸發的清單更新完成。"""

        while self._refresh_task is not None and not self._refresh_task.done():
            await asyncio.shield(self._refresh_task)

    def _clear_annotations(self, file_id: str) -> None:
        self._completed.pop(file_id, None)
        self._errors.pop(file_id, None)
        self._skipped.pop(file_id, None)

    def _on_list_changed(self, files: tuple[FileEntry, ...]) -> None:
        current = {entry.id for entry in files}
        self._converting &= current
        for annotations in (self._completed, self._errors, self._skipped):
            for file_id in set(annotations) - current:
                del annotations[file_id]

    def _request_refresh(self) -> None:
        # 尚未開始的 refresh 會吸收後續的 Completed，避免大量重複往返
        self._refresh_dirty = True
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._drain_refresh())

    async def _drain_refresh(self) -> None:
        while self._refresh_dirty:
            self._refresh_dirty = False
            try:
                await self.file_list.refresh()
            except CommandError as exc:
                self.logger.warning(f"轉換完成後更新清單失敗: {exc.message}")
