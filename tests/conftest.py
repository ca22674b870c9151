import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping, Optional

import pytest

from convert_desk.models import (
    PROGRESS_EVENT,
    ConversionRequest,
    ConversionResult,
    FileEntry,
)
from convert_desk.utils.errors import CommandError, DuplicateFileError


class FakeBackend:
    """記憶體內的引擎替身；指令呼叫會記錄在 calls。"""

    def __init__(self) -> None:
        self.files: list[FileEntry] = []
        self.calls: list[tuple[Any, ...]] = []
        self.failures: dict[str, CommandError] = {}
        self.list_delays: list[float] = []
        self.add_delay = 0.0
        self.converting: set[str] = set()
        self.cpu_count = 8
        self.requests: list[ConversionRequest] = []
        self.convert_error_ids: dict[str, str] = {}
        self._handlers: dict[str, list] = {}
        self._counter = 0

    def _record(self, command: str, *args: Any) -> None:
        self.calls.append((command, *args))
        if command in self.failures:
            raise self.failures[command]

    def count(self, command: str) -> int:
        return sum(1 for call in self.calls if call[0] == command)

    def _next_id(self) -> str:
        self._counter += 1
        return f"file-{self._counter}"

    def listen(self, event: str, handler):
        self._handlers.setdefault(event, []).append(handler)
        return lambda: self._handlers[event].remove(handler)

    def emit(self, payload: Mapping[str, Any]) -> None:
        for handler in list(self._handlers.get(PROGRESS_EVENT, [])):
            handler(payload)

    def mark_converted(self, file_id: str, path: str) -> None:
        self.files = [
            replace(entry, converted=True, converted_path=path)
            if entry.id == file_id
            else entry
            for entry in self.files
        ]

    async def get_file_list(self) -> list[FileEntry]:
        self._record("get_file_list")
        snapshot = list(self.files)
        if self.list_delays:
            await asyncio.sleep(self.list_delays.pop(0))
        return snapshot

    async def add_file_from_path(self, path: str) -> FileEntry:
        self._record("add_file_from_path", path)
        await asyncio.sleep(self.add_delay)
        if any(entry.source_path == path and not entry.converted for entry in self.files):
            raise DuplicateFileError(path)
        entry = FileEntry(
            id=self._next_id(),
            name=Path(path).name,
            size=1024,
            mime_type=f"image/{Path(path).suffix.lstrip('.')}",
            source_path=path,
        )
        self.files.append(entry)
        return entry

    async def add_file_from_url(self, url: str) -> FileEntry:
        self._record("add_file_from_url", url)
        entry = FileEntry(
            id=self._next_id(),
            name=url.rstrip("/").rsplit("/", 1)[-1],
            size=2048,
            mime_type="image/png",
            source_url=url,
        )
        self.files.append(entry)
        return entry

    async def remove_file(self, file_id: str) -> None:
        self._record("remove_file", file_id)
        if file_id in self.converting:
            raise CommandError("remove_file", "File is currently being converted")
        if not any(entry.id == file_id for entry in self.files):
            raise CommandError("remove_file", "File not found")
        self.files = [entry for entry in self.files if entry.id != file_id]

    async def clear_files(self) -> None:
        self._record("clear_files")
        self.files = [entry for entry in self.files if entry.id in self.converting]

    async def remove_converted_files(self) -> None:
        self._record("remove_converted_files")
        self.files = [entry for entry in self.files if not entry.converted]

    async def convert_images(self, request: ConversionRequest) -> list[ConversionResult]:
        self._record("convert_images", request)
        self.requests.append(request)
        pending = [entry for entry in self.files if not entry.converted]
        results = []
        for entry in pending:
            self.emit({"file_id": entry.id, "file_name": entry.name, "status": "converting"})
        for entry in pending:
            if entry.id in self.convert_error_ids:
                self.emit(
                    {
                        "file_id": entry.id,
                        "file_name": entry.name,
                        "status": "error",
                        "error_message": self.convert_error_ids[entry.id],
                    }
                )
                continue
            saved_path = f"/out/{Path(entry.name).stem}.{request.target_format.value}"
            self.mark_converted(entry.id, saved_path)
            self.emit(
                {
                    "file_id": entry.id,
                    "file_name": entry.name,
                    "status": "completed",
                    "saved_path": saved_path,
                }
            )
            results.append(
                ConversionResult(
                    original_name=entry.name,
                    converted_name=Path(saved_path).name,
                    original_size=entry.size,
                    converted_size=entry.size // 2,
                    saved_path=saved_path,
                )
            )
        return results

    async def save_file(self, file_id: str, save_path: str) -> None:
        self._record("save_file", file_id, save_path)

    async def get_cpu_count(self) -> int:
        self._record("get_cpu_count")
        return self.cpu_count

    async def extract_exif(self, raw: bytes):
        return None


class FakePicker:
    def __init__(self, result: Optional[str] = "/tmp/converted") -> None:
        self.result = result
        self.calls = 0

    async def pick_directory(self) -> Optional[str]:
        self.calls += 1
        return self.result


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def picker() -> FakePicker:
    return FakePicker()


@pytest.fixture(autouse=True)
def _log_to_tmp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONVERT_DESK_LOG_FILE", str(tmp_path / "error.log"))
