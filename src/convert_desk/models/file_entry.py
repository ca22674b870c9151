"""檔案清單項目模型。"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class ExifData:
    date_time: Optional[str] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    iso: Optional[str] = None
    shutter_speed: Optional[str] = None
    aperture: Optional[str] = None
    focal_length: Optional[str] = None
    orientation: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    gps_latitude: Optional[str] = None
    gps_longitude: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExifData":
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> dict[str, object]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass(frozen=True)
class FileEntry:
    """後端確認過的檔案紀錄。

    ``source_path`` 與 ``source_url`` 恰有一個有值；``converted_path`` 只在
    ``converted`` 為 True 時存在。
    """

    id: str
    name: str
    size: int
    mime_type: str
    source_path: Optional[str] = None
    source_url: Optional[str] = None
    exif: Optional[ExifData] = None
    converted: bool = False
    converted_path: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.source_path is None) == (self.source_url is None):
            raise ValueError(f"FileEntry {self.id} 必須只有 source_path 或 source_url 其中之一")
        if self.converted_path is not None and not self.converted:
            raise ValueError(f"FileEntry {self.id} 尚未轉換卻有 converted_path")

    @property
    def is_from_url(self) -> bool:
        return self.source_url is not None

    @property
    def source(self) -> str:
        return self.source_path if self.source_path is not None else str(self.source_url)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FileEntry":
        exif = data.get("exif")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            size=int(data["size"]),
            mime_type=str(data.get("mime_type", "application/octet-stream")),
            source_path=data.get("source_path"),
            source_url=data.get("source_url"),
            exif=ExifData.from_dict(exif) if isinstance(exif, Mapping) else None,
            converted=bool(data.get("converted", False)),
            converted_path=data.get("converted_path"),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "mime_type": self.mime_type,
            "source_path": self.source_path,
            "source_url": self.source_url,
            "exif": self.exif.to_dict() if self.exif else None,
            "converted": self.converted,
            "converted_path": self.converted_path,
        }
