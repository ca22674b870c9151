"""以 Pillow 將影像編碼成目標格式。"""

from __future__ import annotations

from io import BytesIO
from typing import Optional

from PIL import Image

from ..models import ImageFormat

# 支援寫入 EXIF 區塊的格式
EXIF_CAPABLE = {ImageFormat.WEBP, ImageFormat.JPEG, ImageFormat.PNG, ImageFormat.AVIF}


class EncodeError(Exception):
    pass


def encode_image(
    image: Image.Image,
    fmt: ImageFormat,
    *,
    quality: int,
    avif_speed: int,
    exif_bytes: Optional[bytes] = None,
) -> bytes:
    if fmt is ImageFormat.ERROR:
        raise EncodeError("Intentional error for testing (dev mode)")

    params: dict[str, object] = {}
    if exif_bytes and fmt in EXIF_CAPABLE:
        params["exif"] = exif_bytes

    if fmt is ImageFormat.WEBP:
        params["quality"] = quality
    elif fmt is ImageFormat.JPEG:
        params["quality"] = quality
        if image.mode not in ("RGB", "L", "CMYK"):
            image = image.convert("RGB")
    elif fmt is ImageFormat.PNG:
        params["compress_level"] = quality
    elif fmt is ImageFormat.AVIF:
        params["quality"] = quality
        params["speed"] = avif_speed
    elif fmt is ImageFormat.BMP:
        if image.mode not in ("1", "L", "P", "RGB", "RGBA"):
            image = image.convert("RGBA" if "A" in image.getbands() else "RGB")

    buffer = BytesIO()
    try:
        image.save(buffer, format=fmt.value.upper(), **params)
    except (OSError, KeyError, ValueError) as exc:
        raise EncodeError(f"Failed to encode {fmt.value}: {exc}") from exc
    return buffer.getvalue()
