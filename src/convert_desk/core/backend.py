"""外部協作者的介面：轉換引擎與資料夾選擇器。"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol

from ..models import ConversionRequest, ConversionResult, ExifData, FileEntry

EventHandler = Callable[[Mapping[str, Any]], None]
Unlisten = Callable[[], None]


class Backend(Protocol):
    """引擎指令。失敗一律以 ``CommandError`` 回報，訊息可直接顯示。"""

    async def get_file_list(self) -> list[FileEntry]:
        ...

    async def add_file_from_path(self, path: str) -> FileEntry:
        ...

    async def add_file_from_url(self, url: str) -> FileEntry:
        ...

    async def remove_file(self, file_id: str) -> None:
        ...

    async def clear_files(self) -> None:
        ...

    async def remove_converted_files(self) -> None:
        ...

    async def convert_images(self, request: ConversionRequest) -> list[ConversionResult]:
        ...

    async def save_file(self, file_id: str, save_path: str) -> None:
        ...

    async def get_cpu_count(self) -> int:
        ...

    async def extract_exif(self, raw: bytes) -> Optional[ExifData]:
        ...

    def listen(self, event: str, handler: EventHandler) -> Unlisten:
        ...


class DirectoryPicker(Protocol):
    async def pick_directory(self) -> Optional[str]:
        """回傳使用者選擇的絕對路徑；取消時回傳 None。"""
        ...
