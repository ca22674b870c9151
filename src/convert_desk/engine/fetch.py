"""由 URL 下載影像。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlsplit

import httpx

from ..utils.errors import CommandError

COMMAND = "add_file_from_url"
DEFAULT_TIMEOUT_SEC = 30.0


@dataclass
class FetchedImage:
    url: str
    file_name: str
    content_type: str
    data: bytes


def file_name_from_url(url: str, content_type: str) -> str:
    segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    file_name = unquote(segments[-1]) if segments else "image"
    if "." not in file_name:
        subtype = content_type.split("/", 1)[-1].split(";", 1)[0].strip()
        if subtype:
            file_name = f"{file_name}.{subtype}"
    return file_name


async def fetch_image(url: str, client: Optional[httpx.AsyncClient] = None) -> FetchedImage:
    owns_client = client is None
    http = client or httpx.AsyncClient(follow_redirects=True, timeout=DEFAULT_TIMEOUT_SEC)
    try:
        try:
            response = await http.get(url)
        except httpx.HTTPError as exc:
            raise CommandError(COMMAND, f"Failed to fetch URL: {exc}") from exc

        if not response.is_success:
            raise CommandError(COMMAND, f"Failed to fetch image ({response.status_code})")

        content_type = response.headers.get("content-type", "application/octet-stream")
        if not content_type.startswith("image/"):
            raise CommandError(
                COMMAND,
                f"URL does not point to an image (content-type: {content_type})",
            )

        return FetchedImage(
            url=url,
            file_name=file_name_from_url(url, content_type),
            content_type=content_type.split(";", 1)[0].strip(),
            data=response.content,
        )
    finally:
        if owns_client:
            await http.aclose()
