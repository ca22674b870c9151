"""行程內參考引擎。"""

from .encoders import EncodeError, encode_image
from .exif import extract_exif, extract_exif_raw_bytes, parse_exif_bytes
from .fetch import FetchedImage, fetch_image, file_name_from_url
from .local_engine import LocalEngine, StoredFile

__all__ = [
    "EncodeError",
    "encode_image",
    "extract_exif",
    "extract_exif_raw_bytes",
    "parse_exif_bytes",
    "FetchedImage",
    "fetch_image",
    "file_name_from_url",
    "LocalEngine",
    "StoredFile",
]
