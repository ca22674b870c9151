"""設定管理器：記憶體中的值為準，寫回磁碟在背景進行。"""

from __future__ import annotations

import copy
import json
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Optional

from platformdirs import user_config_dir

from ..models.conversion_settings import FIELD_KEYS, ConversionSettings, ImageFormat
from ..utils.errors import SettingsValidationError
from ..utils.logger import get_logger
from . import defaults, schema

APP_NAME = "convert-desk"

SettingsListener = Callable[[ConversionSettings], None]


def default_settings_path() -> Path:
    return Path(user_config_dir(APP_NAME)) / "settings.json"


def _load_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def build_settings(data: dict[str, Any]) -> ConversionSettings:
    """由已驗證的 camelCase dict 建立設定物件。"""

    values: dict[str, Any] = {}
    for attr, key in FIELD_KEYS.items():
        value = data[key]
        if attr == "target_format":
            value = ImageFormat(value)
        elif attr == "quality_by_format":
            value = {ImageFormat(fmt): int(level) for fmt, level in value.items()}
        values[attr] = value
    return ConversionSettings(**values)


def merge_settings(raw: Any, logger=None) -> ConversionSettings:
    """逐欄位合併：缺少或不合法的欄位退回預設值，其餘沿用儲存值。"""

    merged = copy.deepcopy(defaults.DEFAULT_SETTINGS)
    if not isinstance(raw, dict):
        if raw is not None and logger is not None:
            logger.warning("設定內容不是物件，使用預設值")
        return build_settings(merged)

    for key, check in schema.FIELD_CHECKS.items():
        if key not in raw:
            continue
        message = check(raw[key])
        if message:
            if logger is not None:
                logger.warning(f"設定欄位 {key} 無效（{message}），使用預設值")
            continue
        merged[key] = raw[key]

    stored_quality = raw.get("qualityByFormat")
    if isinstance(stored_quality, dict):
        for fmt, value in stored_quality.items():
            if fmt not in schema.FORMAT_VALUES:
                continue
            message = schema.check_quality(fmt, value)
            if message:
                if logger is not None:
                    logger.warning(f"設定欄位 qualityByFormat.{fmt} 無效（{message}），使用預設值")
                continue
            merged["qualityByFormat"][fmt] = value
    elif stored_quality is not None and logger is not None:
        logger.warning("設定欄位 qualityByFormat 不是物件，使用預設值")

    return build_settings(merged)


def effective_max_concurrent(settings: ConversionSettings, cpu_count: int) -> int:
    if settings.max_concurrent_conversions == 0:
        return max(1, cpu_count)
    return settings.max_concurrent_conversions


def describe_concurrency(settings: ConversionSettings, cpu_count: int) -> str:
    if settings.max_concurrent_conversions == 0:
        return f"Auto ({max(1, cpu_count)})"
    return str(settings.max_concurrent_conversions)


class JsonSettingsStorage:
    """把設定存在 JSON 檔的固定命名空間底下，保留檔案內其他鍵。"""

    def __init__(self, path: Optional[Path] = None, namespace: str = defaults.SETTINGS_NAMESPACE) -> None:
        self.path = path or default_settings_path()
        self.namespace = namespace

    def _read_document(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        document = _load_json(self.path)
        return document if isinstance(document, dict) else {}

    def load(self) -> Any:
        return self._read_document().get(self.namespace)

    def save(self, data: dict[str, Any]) -> None:
        try:
            document = self._read_document()
        except (OSError, ValueError):
            document = {}
        document[self.namespace] = data
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(document, handle, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)


class SettingsStore:
    """轉換設定的唯一擁有者。

    每個 setter 只替換一個欄位並產生新的不可變 ``ConversionSettings``，
    讀取端永遠看到完整的一份設定。寫回磁碟排入單一 worker 的 executor，
    依呼叫順序落地；失敗只記錄警告，不回報給呼叫端。
    """

    def __init__(self, storage: Optional[JsonSettingsStorage] = None, logger=None) -> None:
        self.logger = logger or get_logger(self.__class__.__name__)
        self.storage = storage
        self._listeners: list[SettingsListener] = []
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: list[Future] = []
        self._settings = self._load()

    def _load(self) -> ConversionSettings:
        if self.storage is None:
            return merge_settings(None)
        try:
            raw = self.storage.load()
        except (OSError, ValueError) as exc:
            self.logger.warning(f"無法讀取設定檔，使用預設值: {exc}")
            raw = None
        return merge_settings(raw, self.logger)

    @property
    def settings(self) -> ConversionSettings:
        return self._settings

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_target_format(self, fmt: ImageFormat | str) -> None:
        try:
            target = ImageFormat(fmt)
        except ValueError as exc:
            raise SettingsValidationError(f"targetFormat: 未知的格式 {fmt!r}") from exc
        self._replace(target_format=target)

    def set_quality_for_format(self, fmt: ImageFormat | str, value: int) -> None:
        try:
            target = ImageFormat(fmt)
        except ValueError as exc:
            raise SettingsValidationError(f"qualityByFormat: 未知的格式 {fmt!r}") from exc
        message = schema.check_quality(target.value, value)
        if message:
            raise SettingsValidationError(f"qualityByFormat.{target.value}: {message}")
        self._commit(self._settings.with_quality(target, value))

    def set_avif_speed(self, value: int) -> None:
        self._replace_checked("avifSpeed", avif_speed=value)

    def set_preserve_exif(self, value: bool) -> None:
        self._replace_checked("preserveExif", preserve_exif=value)

    def set_preserve_timestamps(self, value: bool) -> None:
        self._replace_checked("preserveTimestamps", preserve_timestamps=value)

    def set_use_source_directory(self, value: bool) -> None:
        self._replace_checked("useSourceDirectory", use_source_directory=value)

    def set_create_subfolder(self, value: bool) -> None:
        self._replace_checked("createSubfolder", create_subfolder=value)

    def set_subfolder_name(self, value: str) -> None:
        self._replace_checked("subfolderName", subfolder_name=value)

    def set_url_files_fallback_directory(self, value: str) -> None:
        self._replace_checked("urlFilesFallbackDirectory", url_files_fallback_directory=value)

    def set_max_concurrent_conversions(self, value: int) -> None:
        self._replace_checked("maxConcurrentConversions", max_concurrent_conversions=value)

    def reset(self) -> None:
        self._commit(merge_settings(None))

    def to_dict(self) -> dict[str, Any]:
        return self._settings.to_dict()

    def _replace_checked(self, key: str, **change: Any) -> None:
        (value,) = change.values()
        message = schema.FIELD_CHECKS[key](value)
        if message:
            raise SettingsValidationError(f"{key}: {message}")
        self._replace(**change)

    def _replace(self, **change: Any) -> None:
        self._commit(replace(self._settings, **change))

    def _commit(self, settings: ConversionSettings) -> None:
        if settings == self._settings:
            return
        self._settings = settings
        for listener in list(self._listeners):
            listener(settings)
        self._schedule_flush(settings.to_dict())

    def _schedule_flush(self, snapshot: dict[str, Any]) -> None:
        if self.storage is None:
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="settings-flush")
        self._pending = [future for future in self._pending if not future.done()]
        self._pending.append(self._executor.submit(self._write, snapshot))

    def _write(self, snapshot: dict[str, Any]) -> None:
        try:
            self.storage.save(snapshot)
        except OSError as exc:
            self.logger.warning(f"設定寫入失敗（僅影響下次啟動）: {exc}")

    def flush(self) -> None:
        """等待所有排入的寫入完成。"""

        pending, self._pending = self._pending, []
        for future in pending:
            future.result()

    def close(self) -> None:
        self.flush()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
