"""後端檔案清單的本地鏡像。"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, TypeVar

from ..models import FileEntry
from ..utils.errors import CommandError, DuplicateFileError
from ..utils.logger import get_logger
from .backend import Backend

T = TypeVar("T")
ListListener = Callable[[tuple[FileEntry, ...]], None]


class FileListSynchronizer:
    """持有後端確認過的檔案清單。

    清單只會被 ``refresh()`` 整批替換，從不在本地推算。每次 refresh 取得
    一個遞增序號；若較早發出的請求比較晚的請求更晚回來，其結果直接丟棄。
    """

    def __init__(self, backend: Backend, logger=None) -> None:
        self.backend = backend
        self.logger = logger or get_logger(self.__class__.__name__)
        self._files: tuple[FileEntry, ...] = ()
        self._issued_seq = 0
        self._applied_seq = 0
        self._loading = 0
        self._listeners: list[ListListener] = []

    @property
    def files(self) -> tuple[FileEntry, ...]:
        return self._files

    @property
    def is_loading(self) -> bool:
        return self._loading > 0

    def get(self, file_id: str) -> Optional[FileEntry]:
        for entry in self._files:
            if entry.id == file_id:
                return entry
        return None

    def eligible(self) -> list[FileEntry]:
        return [entry for entry in self._files if not entry.converted]

    def subscribe(self, listener: ListListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self) -> tuple[FileEntry, ...]:
        self._issued_seq += 1
        seq = self._issued_seq
        files = await self._invoke("get_file_list", self.backend.get_file_list())
        if seq < self._applied_seq:
            self.logger.debug(f"丟棄過期的清單回應 #{seq}（已套用 #{self._applied_seq}）")
            return self._files
        self._applied_seq = seq
        self._files = tuple(files)
        for listener in list(self._listeners):
            listener(self._files)
        return self._files

    async def add_from_path(self, path: str) -> FileEntry:
        self._loading += 1
        try:
            entry = await self.issue_add_from_path(path)
            await self.refresh()
            return entry
        finally:
            self._loading -= 1

    async def add_from_url(self, url: str) -> FileEntry:
        self._loading += 1
        try:
            entry = await self._invoke("add_file_from_url", self.backend.add_file_from_url(url))
            await self.refresh()
            return entry
        finally:
            self._loading -= 1

    async def issue_add_from_path(self, path: str) -> FileEntry:
        """只送出新增指令，不重新整理；呼叫端負責之後呼叫 ``refresh()``。"""

        return await self._invoke("add_file_from_path", self.backend.add_file_from_path(path))

    async def remove_file(self, file_id: str) -> None:
        await self._invoke("remove_file", self.backend.remove_file(file_id))
        await self.refresh()

    async def clear_files(self) -> None:
        await self._invoke("clear_files", self.backend.clear_files())
        await self.refresh()

    async def remove_converted_files(self) -> None:
        await self._invoke("remove_converted_files", self.backend.remove_converted_files())
        await self.refresh()

    async def save_file(self, file_id: str, save_path: str) -> None:
        await self._invoke("save_file", self.backend.save_file(file_id, save_path))

    async def _invoke(self, command: str, call: Awaitable[T]) -> T:
        try:
            return await call
        except DuplicateFileError as exc:
            self.logger.info(f"略過重複檔案: {exc.path}")
            raise
        except CommandError as exc:
            self.logger.error(f"{command} 失敗: {exc.message}")
            raise
        except Exception as exc:
            self.logger.error(f"{command} 失敗: {exc}")
            raise CommandError(command, str(exc)) from exc
