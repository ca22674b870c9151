"""設定模組。"""

from .defaults import DEFAULT_SETTINGS, SETTINGS_NAMESPACE
from .manager import (
    JsonSettingsStorage,
    SettingsStore,
    describe_concurrency,
    effective_max_concurrent,
    merge_settings,
)
from .schema import validate_settings

__all__ = [
    "DEFAULT_SETTINGS",
    "SETTINGS_NAMESPACE",
    "JsonSettingsStorage",
    "SettingsStore",
    "describe_concurrency",
    "effective_max_concurrent",
    "merge_settings",
    "validate_settings",
]
