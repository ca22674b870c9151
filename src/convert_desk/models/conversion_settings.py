"""轉換設定模型。"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping


class ImageFormat(str, Enum):
    WEBP = "webp"
    JPEG = "jpeg"
    PNG = "png"
    AVIF = "avif"
    GIF = "gif"
    BMP = "bmp"
    TIFF = "tiff"
    # 僅供開發版測試錯誤流程使用
    ERROR = "error"

    @property
    def is_lossless_level(self) -> bool:
        return self is ImageFormat.PNG

    @property
    def quality_range(self) -> tuple[int, int]:
        return (0, 9) if self.is_lossless_level else (0, 100)


def available_formats(include_diagnostic: bool = False) -> list[ImageFormat]:
    return [fmt for fmt in ImageFormat if include_diagnostic or fmt is not ImageFormat.ERROR]


# 持久化時使用的欄位名稱（與桌面前端相容的 camelCase）
FIELD_KEYS = {
    "target_format": "targetFormat",
    "quality_by_format": "qualityByFormat",
    "avif_speed": "avifSpeed",
    "preserve_exif": "preserveExif",
    "preserve_timestamps": "preserveTimestamps",
    "use_source_directory": "useSourceDirectory",
    "create_subfolder": "createSubfolder",
    "subfolder_name": "subfolderName",
    "url_files_fallback_directory": "urlFilesFallbackDirectory",
    "max_concurrent_conversions": "maxConcurrentConversions",
}


@dataclass(frozen=True)
class ConversionSettings:
    target_format: ImageFormat = ImageFormat.WEBP
    quality_by_format: Mapping[ImageFormat, int] = field(default_factory=dict)
    avif_speed: int = 6
    preserve_exif: bool = True
    preserve_timestamps: bool = True
    use_source_directory: bool = False
    create_subfolder: bool = False
    subfolder_name: str = "converted"
    url_files_fallback_directory: str = ""
    max_concurrent_conversions: int = 0

    def quality_for(self, fmt: ImageFormat | None = None) -> int:
        target = fmt or self.target_format
        return int(self.quality_by_format.get(target, 0))

    def with_quality(self, fmt: ImageFormat, value: int) -> "ConversionSettings":
        quality = dict(self.quality_by_format)
        quality[fmt] = value
        return replace(self, quality_by_format=quality)

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {}
        for attr, key in FIELD_KEYS.items():
            value = getattr(self, attr)
            if attr == "target_format":
                value = value.value
            elif attr == "quality_by_format":
                value = {fmt.value: int(level) for fmt, level in value.items()}
            data[key] = value
        return data
