"""設定檔驗證邏輯。"""

from __future__ import annotations

from typing import Any, Callable, Optional

from ..models.conversion_settings import ImageFormat

FORMAT_VALUES = {fmt.value for fmt in ImageFormat}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_target_format(value: Any) -> Optional[str]:
    if value not in FORMAT_VALUES:
        return f"必須是 {', '.join(sorted(FORMAT_VALUES))} 其中之一"
    return None


def check_quality(fmt: str, value: Any) -> Optional[str]:
    low, high = ImageFormat(fmt).quality_range
    if not _is_int(value):
        return "必須是整數"
    if not (low <= value <= high):
        return f"必須介於 {low} 到 {high}"
    return None


def check_avif_speed(value: Any) -> Optional[str]:
    if not _is_int(value) or not (1 <= value <= 10):
        return "必須是 1 到 10 的整數"
    return None


def check_bool(value: Any) -> Optional[str]:
    if not isinstance(value, bool):
        return "必須是布林值"
    return None


def check_subfolder_name(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return "必須是非空字串"
    if "/" in value or "\\" in value:
        return "不可包含路徑分隔字元"
    return None


def check_directory(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return "必須是字串"
    return None


def check_max_concurrent(value: Any) -> Optional[str]:
    if not _is_int(value) or value < 0:
        return "必須是大於等於 0 的整數（0 代表自動）"
    return None


FIELD_CHECKS: dict[str, Callable[[Any], Optional[str]]] = {
    "targetFormat": check_target_format,
    "avifSpeed": check_avif_speed,
    "preserveExif": check_bool,
    "preserveTimestamps": check_bool,
    "useSourceDirectory": check_bool,
    "createSubfolder": check_bool,
    "subfolderName": check_subfolder_name,
    "urlFilesFallbackDirectory": check_directory,
    "maxConcurrentConversions": check_max_concurrent,
}


def validate_settings(settings: dict[str, Any]) -> list[str]:
    errors: list[str] = []

    def add_error(path: str, message: str) -> None:
        errors.append(f"{path}: {message}")

    for key, check in FIELD_CHECKS.items():
        if key not in settings:
            add_error(key, "缺少欄位")
            continue
        message = check(settings[key])
        if message:
            add_error(key, message)

    quality = settings.get("qualityByFormat")
    if not isinstance(quality, dict):
        add_error("qualityByFormat", "必須是物件")
    else:
        for fmt, value in quality.items():
            if fmt not in FORMAT_VALUES:
                add_error(f"qualityByFormat.{fmt}", "未知的格式")
                continue
            message = check_quality(fmt, value)
            if message:
                add_error(f"qualityByFormat.{fmt}", message)

    return errors
