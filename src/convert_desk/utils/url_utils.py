"""URL 正規化與驗證。"""

from __future__ import annotations

import ipaddress
import re
from urllib.parse import urlsplit

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$", re.IGNORECASE)
_TLD_RE = re.compile(r"^(?:[a-z]{2,63}|xn--[a-z0-9-]{1,59})$", re.IGNORECASE)

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_SCHEME = "https"


def normalize_url(value: str) -> str:
    """去除空白；沒有 http(s) 前綴時補上 https://。"""

    trimmed = value.strip()
    if not trimmed:
        return ""
    if not _SCHEME_RE.match(trimmed):
        return f"{DEFAULT_SCHEME}://{trimmed}"
    return trimmed


def _is_valid_host(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    labels = host.rstrip(".").split(".")
    if len(labels) < 2:
        return False
    if not all(_LABEL_RE.match(label) for label in labels):
        return False
    return bool(_TLD_RE.match(labels[-1]))


def validate_url(value: str) -> bool:
    trimmed = value.strip()
    if not trimmed or any(char.isspace() for char in trimmed):
        return False
    candidate = normalize_url(trimmed)
    try:
        parts = urlsplit(candidate)
        host = parts.hostname
        parts.port  # 非法的 port 會在此拋出 ValueError
    except ValueError:
        return False
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not host:
        return False
    return _is_valid_host(host)
