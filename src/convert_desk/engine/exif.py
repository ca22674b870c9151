"""EXIF 讀取工具。讀取失敗一律不致命，只記錄警告。"""

from __future__ import annotations

from fractions import Fraction
from io import BytesIO
from typing import Any, Optional

import piexif
from PIL import Image
from pillow_heif import register_heif_opener

from ..models import ExifData

_heif_registered = False


def ensure_heif_opener() -> None:
    global _heif_registered
    if not _heif_registered:
        register_heif_opener()
        _heif_registered = True


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    text = str(value).strip("\x00 ").strip()
    return text or None


def _ratio(value: Any) -> Optional[Fraction]:
    if isinstance(value, tuple) and len(value) == 2 and value[1]:
        return Fraction(value[0], value[1])
    return None


def _format_exposure(value: Any) -> Optional[str]:
    ratio = _ratio(value)
    if ratio is None:
        return None
    if ratio >= 1:
        return f"{float(ratio):g} s"
    return f"1/{round(1 / ratio)} s"


def _format_aperture(value: Any) -> Optional[str]:
    ratio = _ratio(value)
    return f"f/{float(ratio):.1f}" if ratio is not None else None


def _format_focal_length(value: Any) -> Optional[str]:
    ratio = _ratio(value)
    return f"{float(ratio):g} mm" if ratio is not None else None


def _format_gps(value: Any, ref: Any) -> Optional[str]:
    if not isinstance(value, tuple) or len(value) != 3:
        return None
    parts = [_ratio(item) for item in value]
    if any(part is None for part in parts):
        return None
    degrees, minutes, seconds = (float(part) for part in parts)
    suffix = _text(ref) or ""
    return f"{degrees:g}°{minutes:g}'{seconds:.2f}\" {suffix}".rstrip()


def _first_int(value: Any) -> Optional[int]:
    if isinstance(value, (tuple, list)):
        value = value[0] if value else None
    return int(value) if isinstance(value, int) else None


def extract_exif_raw_bytes(data: bytes, logger=None) -> Optional[bytes]:
    ensure_heif_opener()
    try:
        with Image.open(BytesIO(data)) as image:
            exif_bytes = image.info.get("exif")
    except Exception as exc:
        if logger is not None:
            logger.warning(f"無法讀取原始 EXIF: {exc}")
        return None
    return exif_bytes or None


def extract_exif(data: bytes, logger=None) -> Optional[ExifData]:
    """由影像位元組取出 EXIF 摘要；沒有 EXIF 或解析失敗時回傳 None。"""

    return parse_exif_bytes(extract_exif_raw_bytes(data, logger), logger)


def parse_exif_bytes(exif_bytes: Optional[bytes], logger=None) -> Optional[ExifData]:
    if not exif_bytes:
        return None
    try:
        exif_dict = piexif.load(exif_bytes)
    except Exception as exc:
        if logger is not None:
            logger.warning(f"無法解析 EXIF: {exc}")
        return None

    zeroth = exif_dict.get("0th", {})
    exif_ifd = exif_dict.get("Exif", {})
    gps = exif_dict.get("GPS", {})
    exif = ExifData(
        date_time=_text(exif_ifd.get(piexif.ExifIFD.DateTimeOriginal)),
        camera_make=_text(zeroth.get(piexif.ImageIFD.Make)),
        camera_model=_text(zeroth.get(piexif.ImageIFD.Model)),
        iso=_text(_first_int(exif_ifd.get(piexif.ExifIFD.ISOSpeedRatings))),
        shutter_speed=_format_exposure(exif_ifd.get(piexif.ExifIFD.ExposureTime)),
        aperture=_format_aperture(exif_ifd.get(piexif.ExifIFD.FNumber)),
        focal_length=_format_focal_length(exif_ifd.get(piexif.ExifIFD.FocalLength)),
        orientation=_first_int(zeroth.get(piexif.ImageIFD.Orientation)),
        width=_first_int(exif_ifd.get(piexif.ExifIFD.PixelXDimension)),
        height=_first_int(exif_ifd.get(piexif.ExifIFD.PixelYDimension)),
        gps_latitude=_format_gps(
            gps.get(piexif.GPSIFD.GPSLatitude), gps.get(piexif.GPSIFD.GPSLatitudeRef)
        ),
        gps_longitude=_format_gps(
            gps.get(piexif.GPSIFD.GPSLongitude), gps.get(piexif.GPSIFD.GPSLongitudeRef)
        ),
    )
    return exif
