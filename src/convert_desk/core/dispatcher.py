"""Compose settings and the file list into one batch conversion request."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from ..config.manager import SettingsStore, describe_concurrency, effective_max_concurrent
from ..models import USE_SOURCE_DIR, ConversionRequest, ConversionResult
from ..utils.errors import CommandError, NoOutputDirectoryError, ValidationError
from ..utils.logger import get_logger
from .backend import Backend, DirectoryPicker
from .file_list import FileListSynchronizer
from .progress_reducer import ProgressReducer


@dataclass(frozen=True)
class BatchOutcome:
    request: ConversionRequest
    requested_count: int
    results: tuple[ConversionResult, ...]

    @property
    def converted_count(self) -> int:
        return len(self.results)

    @property
    def unconverted_count(self) -> int:
        return max(0, self.requested_count - self.converted_count)

    @property
    def total_original_size(self) -> int:
        return sum(item.original_size for item in self.results)

    @property
    def total_converted_size(self) -> int:
        return sum(item.converted_size for item in self.results)

    @property
    def saved_ratio(self) -> float:
        if self.total_original_size == 0:
            return 0.0
        return 1.0 - self.total_converted_size / self.total_original_size


class ConversionDispatcher:
    """Gate and fire batch conversions.

    Disabled while nothing is eligible or while a batch (or any converting
    file) is in flight. No retries: a failed batch leaves list and settings
    untouched so the user can try again.
    """

    def __init__(
        self,
        backend: Backend,
        settings: SettingsStore,
        file_list: FileListSynchronizer,
        reducer: ProgressReducer,
        picker: Optional[DirectoryPicker] = None,
        logger=None,
    ) -> None:
        self.backend = backend
        self.settings = settings
        self.file_list = file_list
        self.reducer = reducer
        self.picker = picker
        self.logger = logger or get_logger(self.__class__.__name__)
        self._in_flight = False
        self._cpu_count: Optional[int] = None

    @property
    def eligible_count(self) -> int:
        return len(self.file_list.eligible())

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def can_convert(self) -> bool:
        return self.eligible_count > 0 and not self._in_flight and not self.reducer.is_converting

    async def cpu_count(self) -> int:
        if self._cpu_count is None:
            try:
                self._cpu_count = int(await self.backend.get_cpu_count())
            except CommandError:
                raise
            except Exception as exc:
                raise CommandError("get_cpu_count", str(exc)) from exc
        return self._cpu_count

    async def concurrency_label(self) -> str:
        return describe_concurrency(self.settings.settings, await self.cpu_count())

    async def resolve_output_dir(self) -> Optional[str]:
        if self.settings.settings.use_source_directory:
            return USE_SOURCE_DIR
        if self.picker is None:
            raise NoOutputDirectoryError()
        selected = await self.picker.pick_directory()
        if not selected:
            return None
        if not os.path.isabs(selected):
            raise ValidationError(f"Output directory must be an absolute path: {selected}")
        return selected

    async def build_request(self, output_dir: str) -> ConversionRequest:
        current = self.settings.settings
        max_concurrent = current.max_concurrent_conversions
        if max_concurrent == 0:
            max_concurrent = effective_max_concurrent(current, await self.cpu_count())
        return ConversionRequest(
            target_format=current.target_format,
            quality=current.quality_for(),
            avif_speed=current.avif_speed,
            preserve_exif=current.preserve_exif,
            preserve_timestamps=current.preserve_timestamps,
            output_dir=output_dir,
            max_concurrent=max_concurrent,
            create_subfolder=current.create_subfolder,
            subfolder_name=current.subfolder_name,
            url_files_fallback_dir=current.url_files_fallback_directory,
        )

    async def convert(self) -> Optional[BatchOutcome]:
        """Run one batch. Returns None when disabled or the picker was cancelled."""

        if not self.can_convert:
            self.logger.info("No eligible files or a conversion is already running")
            return None

        self._in_flight = True
        try:
            output_dir = await self.resolve_output_dir()
            if output_dir is None:
                self.logger.info("Output directory selection cancelled")
                return None
            request = await self.build_request(output_dir)
            requested_count = self.eligible_count
            self.logger.info(
                f"Converting {requested_count} file(s) to {request.target_format.value} "
                f"(quality {request.quality}, {request.max_concurrent} worker(s))"
            )
            try:
                results = await self.backend.convert_images(request)
            except CommandError as exc:
                self.logger.error(f"convert_images failed: {exc.message}")
                raise
            except Exception as exc:
                self.logger.error(f"convert_images failed: {exc}")
                raise CommandError("convert_images", str(exc)) from exc
        finally:
            self._in_flight = False

        outcome = BatchOutcome(
            request=request,
            requested_count=requested_count,
            results=tuple(results),
        )
        self.logger.info(
            f"Batch done: {outcome.converted_count}/{outcome.requested_count} converted, "
            f"saved {outcome.saved_ratio:.1%}"
        )
        try:
            await self.file_list.refresh()
        except CommandError as exc:
            self.logger.warning(f"Refresh after batch failed: {exc.message}")
        return outcome
