"""在同一行程內實作引擎指令的參考引擎。"""

from __future__ import annotations

import asyncio
import os
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Mapping, Optional

import httpx
from PIL import Image
from platformdirs import user_downloads_dir

from ..core.backend import EventHandler, Unlisten
from ..models import (
    PROGRESS_EVENT,
    ConversionProgress,
    ConversionRequest,
    ConversionResult,
    ExifData,
    FileEntry,
    ProgressStatus,
)
from ..utils.errors import CommandError, DuplicateFileError
from ..utils.logger import get_logger
from .encoders import EncodeError, encode_image
from .exif import ensure_heif_opener, extract_exif, extract_exif_raw_bytes, parse_exif_bytes
from .fetch import fetch_image


@dataclass
class StoredFile:
    id: str
    name: str
    data: bytes
    mime_type: str
    source_path: Optional[str] = None
    source_url: Optional[str] = None
    exif: Optional[ExifData] = None
    exif_raw: Optional[bytes] = None
    # (atime, mtime)，僅本機檔案有
    timestamps: Optional[tuple[float, float]] = None
    converted: bool = False
    converted_path: Optional[str] = None

    def to_entry(self) -> FileEntry:
        return FileEntry(
            id=self.id,
            name=self.name,
            size=len(self.data),
            mime_type=self.mime_type,
            source_path=self.source_path,
            source_url=self.source_url,
            exif=self.exif,
            converted=self.converted,
            converted_path=self.converted_path if self.converted else None,
        )


@dataclass
class _ConvertJob:
    file: StoredFile
    request: ConversionRequest
    loop: asyncio.AbstractEventLoop


class LocalEngine:
    """以 Pillow 轉檔、httpx 下載的引擎。

    清單受 ``threading.Lock`` 保護，因為轉檔在 thread pool 中執行並會
    標記完成狀態；進度事件則一律排回事件迴圈的執行緒再分派。
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        cpu_count: Optional[int] = None,
        logger=None,
    ) -> None:
        self.logger = logger or get_logger(self.__class__.__name__)
        self.http_client = http_client
        self._cpu_count = cpu_count or os.cpu_count() or 1
        self._files: list[StoredFile] = []
        self._converting: set[str] = set()
        self._lock = threading.Lock()
        self._handlers: dict[str, list[EventHandler]] = {}
        ensure_heif_opener()

    def listen(self, event: str, handler: EventHandler) -> Unlisten:
        self._handlers.setdefault(event, []).append(handler)

        def unlisten() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unlisten

    def _dispatch(self, event: str, payload: Mapping[str, Any]) -> None:
        for handler in list(self._handlers.get(event, [])):
            handler(payload)

    def _emit_progress(self, job: _ConvertJob, status: ProgressStatus, **extra: Optional[str]) -> None:
        payload = ConversionProgress(
            file_id=job.file.id,
            file_name=job.file.name,
            status=status,
            **extra,
        ).to_payload()
        job.loop.call_soon_threadsafe(self._dispatch, PROGRESS_EVENT, payload)

    async def get_file_list(self) -> list[FileEntry]:
        with self._lock:
            return [item.to_entry() for item in self._files]

    async def add_file_from_path(self, path: str) -> FileEntry:
        file_path = Path(path)
        try:
            data, stat = await asyncio.to_thread(lambda: (file_path.read_bytes(), file_path.stat()))
        except OSError as exc:
            raise CommandError("add_file_from_path", f"Failed to read file: {exc}") from exc

        exif, exif_raw = await asyncio.to_thread(self._read_exif, data)
        ext = file_path.suffix.lstrip(".").lower()
        stored = StoredFile(
            id=str(uuid.uuid4()),
            name=file_path.name or "unknown",
            data=data,
            mime_type=f"image/{ext}" if ext else "application/octet-stream",
            source_path=path,
            exif=exif,
            exif_raw=exif_raw,
            timestamps=(stat.st_atime, stat.st_mtime),
        )
        with self._lock:
            # 已轉換過的同路徑檔案可以再次加入重新轉換
            if any(item.source_path == path and not item.converted for item in self._files):
                raise DuplicateFileError(path)
            self._files.append(stored)
        return stored.to_entry()

    async def add_file_from_url(self, url: str) -> FileEntry:
        fetched = await fetch_image(url, self.http_client)
        exif, exif_raw = await asyncio.to_thread(self._read_exif, fetched.data)
        stored = StoredFile(
            id=str(uuid.uuid4()),
            name=fetched.file_name,
            data=fetched.data,
            mime_type=fetched.content_type,
            source_url=url,
            exif=exif,
            exif_raw=exif_raw,
        )
        with self._lock:
            self._files.append(stored)
        return stored.to_entry()

    def _read_exif(self, data: bytes) -> tuple[Optional[ExifData], Optional[bytes]]:
        exif_raw = extract_exif_raw_bytes(data, self.logger)
        return parse_exif_bytes(exif_raw, self.logger), exif_raw

    async def extract_exif(self, raw: bytes) -> Optional[ExifData]:
        return await asyncio.to_thread(extract_exif, raw, self.logger)

    async def remove_file(self, file_id: str) -> None:
        with self._lock:
            if file_id in self._converting:
                raise CommandError("remove_file", "File is currently being converted")
            remaining = [item for item in self._files if item.id != file_id]
            if len(remaining) == len(self._files):
                raise CommandError("remove_file", "File not found")
            self._files = remaining

    async def clear_files(self) -> None:
        with self._lock:
            self._files = [item for item in self._files if item.id in self._converting]

    async def remove_converted_files(self) -> None:
        with self._lock:
            self._files = [item for item in self._files if not item.converted]

    async def save_file(self, file_id: str, save_path: str) -> None:
        with self._lock:
            stored = next((item for item in self._files if item.id == file_id), None)
        if stored is None:
            raise CommandError("save_file", "File not found")
        try:
            await asyncio.to_thread(Path(save_path).write_bytes, stored.data)
        except OSError as exc:
            raise CommandError("save_file", f"Failed to save file: {exc}") from exc

    async def get_cpu_count(self) -> int:
        return self._cpu_count

    async def convert_images(self, request: ConversionRequest) -> list[ConversionResult]:
        with self._lock:
            pending = [item for item in self._files if not item.converted]
            if not pending:
                raise CommandError(
                    "convert_images", "No files to convert (all files already converted)"
                )
            self._converting.update(item.id for item in pending)

        loop = asyncio.get_running_loop()
        workers = max(1, request.max_concurrent or self._cpu_count)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="convert") as pool:

            async def run_one(stored: StoredFile) -> Optional[ConversionResult]:
                job = _ConvertJob(file=stored, request=request, loop=loop)
                try:
                    return await loop.run_in_executor(pool, self._convert_one, job)
                except Exception as exc:
                    return self._fail(job, f"Conversion failed: {exc}")
                finally:
                    with self._lock:
                        self._converting.discard(stored.id)

            results = await asyncio.gather(
                *(run_one(item) for item in pending), return_exceptions=True
            )
        return [result for result in results if isinstance(result, ConversionResult)]

    def _convert_one(self, job: _ConvertJob) -> Optional[ConversionResult]:
        stored, request = job.file, job.request
        self._emit_progress(job, ProgressStatus.CONVERTING)

        try:
            output_path = self._resolve_output_path(stored, request)
        except OSError as exc:
            return self._fail(job, f"Failed to prepare output directory: {exc}")

        if output_path.exists():
            self._emit_progress(job, ProgressStatus.SKIPPED, error_message="File already exists")
            return None

        try:
            with Image.open(BytesIO(stored.data)) as image:
                image.load()
                encoded = encode_image(
                    image,
                    request.target_format,
                    quality=request.quality,
                    avif_speed=request.avif_speed,
                    exif_bytes=stored.exif_raw if request.preserve_exif else None,
                )
        except EncodeError as exc:
            return self._fail(job, str(exc))
        except Exception as exc:
            # 含 Image.DecompressionBombError 等非 OSError 的解碼失敗
            return self._fail(job, f"Failed to decode image: {exc}")

        try:
            output_path.write_bytes(encoded)
        except OSError as exc:
            return self._fail(job, f"Failed to write file: {exc}")

        if request.preserve_timestamps and stored.timestamps is not None:
            try:
                os.utime(output_path, stored.timestamps)
            except OSError as exc:
                self.logger.warning(f"無法保留時間戳記 {output_path}: {exc}")

        saved_path = str(output_path)
        with self._lock:
            stored.converted = True
            stored.converted_path = saved_path
        self._emit_progress(job, ProgressStatus.COMPLETED, saved_path=saved_path)
        return ConversionResult(
            original_name=stored.name,
            converted_name=output_path.name,
            original_size=len(stored.data),
            converted_size=len(encoded),
            saved_path=saved_path,
        )

    def _fail(self, job: _ConvertJob, message: str) -> None:
        self.logger.error(f"{job.file.name}: {message}")
        self._emit_progress(job, ProgressStatus.ERROR, error_message=message)
        return None

    def _resolve_output_path(self, stored: StoredFile, request: ConversionRequest) -> Path:
        output_name = f"{Path(stored.name).stem or 'image'}.{request.target_format.value}"
        if not request.uses_source_directory:
            return Path(request.output_dir) / output_name

        if stored.source_path is not None:
            base_dir = Path(stored.source_path).parent
        elif request.url_files_fallback_dir:
            base_dir = Path(request.url_files_fallback_dir)
        else:
            base_dir = Path(user_downloads_dir())

        if request.create_subfolder and request.subfolder_name:
            base_dir = base_dir / request.subfolder_name
            base_dir.mkdir(parents=True, exist_ok=True)
        return base_dir / output_name

