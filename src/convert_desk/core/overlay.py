"""清單與暫態狀態只在這裡合併成畫面用的列資料。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..models import ConversionStatus, FileEntry, StatusKind
from .progress_reducer import ProgressReducer


def file_extension(name: str) -> str:
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def format_extension_label(ext: str) -> str:
    return ext.upper()[:4]


@dataclass(frozen=True)
class FileRow:
    entry: FileEntry
    status: ConversionStatus
    extension: str
    saved_path: Optional[str] = None

    @property
    def extension_label(self) -> str:
        return format_extension_label(self.extension)

    @property
    def reveal_target(self) -> Optional[str]:
        """「在檔案管理員中顯示」的目標：優先顯示輸出檔。"""

        return self.entry.converted_path or self.saved_path or self.entry.source_path

    @property
    def can_download(self) -> bool:
        return self.entry.is_from_url

    @property
    def can_remove(self) -> bool:
        return self.status.kind is not StatusKind.CONVERTING


def build_rows(files: Iterable[FileEntry], reducer: ProgressReducer) -> list[FileRow]:
    return [
        FileRow(
            entry=entry,
            status=reducer.status_of(entry.id, entry),
            extension=file_extension(entry.name),
            saved_path=reducer.saved_path(entry.id),
        )
        for entry in files
    ]
