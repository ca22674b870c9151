"""批次轉換請求與結果。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .conversion_settings import ImageFormat

# 代表「輸出到各檔案的來源資料夾」；選擇器回傳的一律是絕對路徑，不會與此值相同
USE_SOURCE_DIR = "USE_SOURCE_DIR"


@dataclass(frozen=True)
class ConversionRequest:
    target_format: ImageFormat
    quality: int
    avif_speed: int
    preserve_exif: bool
    preserve_timestamps: bool
    output_dir: str
    max_concurrent: int
    create_subfolder: bool = False
    subfolder_name: str = ""
    url_files_fallback_dir: str = ""

    @property
    def uses_source_directory(self) -> bool:
        return self.output_dir == USE_SOURCE_DIR

    def to_payload(self) -> dict[str, object]:
        return {
            "targetFormat": self.target_format.value,
            "quality": self.quality,
            "avifSpeed": self.avif_speed,
            "preserveExif": self.preserve_exif,
            "preserveTimestamps": self.preserve_timestamps,
            "outputDir": self.output_dir,
            "maxConcurrent": self.max_concurrent,
            "createSubfolder": self.create_subfolder,
            "subfolderName": self.subfolder_name,
            "urlFilesFallbackDir": self.url_files_fallback_dir,
        }


@dataclass(frozen=True)
class ConversionResult:
    original_name: str
    converted_name: str
    original_size: int
    converted_size: int
    saved_path: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConversionResult":
        return cls(
            original_name=str(data["original_name"]),
            converted_name=str(data["converted_name"]),
            original_size=int(data["original_size"]),
            converted_size=int(data["converted_size"]),
            saved_path=str(data["saved_path"]),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "original_name": self.original_name,
            "converted_name": self.converted_name,
            "original_size": self.original_size,
            "converted_size": self.converted_size,
            "saved_path": self.saved_path,
        }
