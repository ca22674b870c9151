"""日誌工具。"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

LOGGER_PREFIX = "convert_desk"
LOG_FILE_ENV = "CONVERT_DESK_LOG_FILE"


def _default_log_path() -> Path:
    override = os.environ.get(LOG_FILE_ENV)
    if override:
        return Path(override)
    return Path.cwd() / "error.log"


def get_logger(name: str, log_file: Optional[Path] = None) -> logging.Logger:
    """取得元件專用 logger；INFO 以上輸出到終端，WARNING 以上另寫入檔案。"""

    full_name = name if name.startswith(LOGGER_PREFIX) else f"{LOGGER_PREFIX}.{name}"
    logger = logging.getLogger(full_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    log_path = log_file or _default_log_path()
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.FileHandler(log_path, encoding="utf-8", delay=True)
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)

    return logger
