import json
import logging
from pathlib import Path

import pytest

from convert_desk.config import (
    DEFAULT_SETTINGS,
    SETTINGS_NAMESPACE,
    JsonSettingsStorage,
    SettingsStore,
    describe_concurrency,
    effective_max_concurrent,
    merge_settings,
    validate_settings,
)
from convert_desk.models import ConversionSettings, ImageFormat
from convert_desk.utils.errors import SettingsValidationError


def _store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(JsonSettingsStorage(tmp_path / "settings.json"))


def _saved(tmp_path: Path) -> dict:
    return json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))


def test_settings_load_defaults() -> None:
    store = SettingsStore()
    settings = store.settings
    assert settings.target_format is ImageFormat.WEBP
    assert settings.quality_for(ImageFormat.WEBP) == 80
    assert settings.quality_for(ImageFormat.PNG) == 6
    assert settings.avif_speed == 6
    assert settings.preserve_exif is True
    assert settings.preserve_timestamps is True
    assert settings.use_source_directory is False
    assert settings.subfolder_name == "converted"
    assert settings.url_files_fallback_directory == ""
    assert settings.max_concurrent_conversions == 0


def test_default_settings_pass_validation() -> None:
    assert validate_settings(DEFAULT_SETTINGS) == []


def test_validation_reports_bad_fields() -> None:
    data = dict(DEFAULT_SETTINGS)
    data["avifSpeed"] = 11
    data["qualityByFormat"] = {**DEFAULT_SETTINGS["qualityByFormat"], "png": 12}
    errors = validate_settings(data)
    assert any(error.startswith("avifSpeed") for error in errors)
    assert any(error.startswith("qualityByFormat.png") for error in errors)


def test_setter_persists_under_namespace(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.set_target_format("avif")
    store.set_quality_for_format(ImageFormat.AVIF, 55)
    store.flush()

    saved = _saved(tmp_path)
    assert saved[SETTINGS_NAMESPACE]["targetFormat"] == "avif"
    assert saved[SETTINGS_NAMESPACE]["qualityByFormat"]["avif"] == 55
    assert store.settings.quality_for() == 55
    store.close()


def test_setters_replace_single_field(tmp_path: Path) -> None:
    store = _store(tmp_path)
    before = store.settings
    store.set_preserve_exif(False)
    after = store.settings

    assert after.preserve_exif is False
    assert before.preserve_exif is True
    assert after.target_format == before.target_format
    assert after.quality_by_format == before.quality_by_format
    store.close()


def test_invalid_setter_leaves_settings_untouched(tmp_path: Path) -> None:
    store = _store(tmp_path)
    with pytest.raises(SettingsValidationError):
        store.set_quality_for_format(ImageFormat.PNG, 10)
    with pytest.raises(SettingsValidationError):
        store.set_avif_speed(0)
    with pytest.raises(SettingsValidationError):
        store.set_target_format("heic")
    with pytest.raises(SettingsValidationError):
        store.set_max_concurrent_conversions(-1)

    assert store.settings == merge_settings(None)
    assert not (tmp_path / "settings.json").exists()
    store.close()


def test_reset_restores_defaults(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.set_target_format(ImageFormat.JPEG)
    store.set_subfolder_name("out")
    store.set_max_concurrent_conversions(3)
    store.reset()
    store.flush()

    assert store.settings == merge_settings(None)
    assert _saved(tmp_path)[SETTINGS_NAMESPACE] == DEFAULT_SETTINGS
    store.close()


def test_round_trip_through_storage(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.set_target_format(ImageFormat.PNG)
    store.set_quality_for_format(ImageFormat.PNG, 9)
    store.set_create_subfolder(True)
    store.set_url_files_fallback_directory("/downloads")
    store.close()

    reloaded = _store(tmp_path)
    assert reloaded.settings == store.settings


def test_missing_newer_fields_use_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({SETTINGS_NAMESPACE: {"targetFormat": "jpeg", "qualityByFormat": {"jpeg": 70}}}),
        encoding="utf-8",
    )

    settings = _store(tmp_path).settings
    assert settings.target_format is ImageFormat.JPEG
    assert settings.quality_for(ImageFormat.JPEG) == 70
    assert settings.quality_for(ImageFormat.WEBP) == 80
    assert settings.url_files_fallback_directory == ""
    assert settings.max_concurrent_conversions == 0


def test_corrupt_fields_fall_back_individually(caplog: pytest.LogCaptureFixture) -> None:
    raw = {
        "targetFormat": "gif",
        "avifSpeed": "fast",
        "preserveExif": "yes",
        "qualityByFormat": {"webp": 250, "jpeg": 60, "unknown": 1},
    }
    with caplog.at_level(logging.WARNING):
        settings = merge_settings(raw, logging.getLogger("convert_desk.test"))

    assert settings.target_format is ImageFormat.GIF
    assert settings.avif_speed == 6
    assert settings.preserve_exif is True
    assert settings.quality_for(ImageFormat.WEBP) == 80
    assert settings.quality_for(ImageFormat.JPEG) == 60
    assert "avifSpeed" in caplog.text


def test_unreadable_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / "settings.json").write_text("{not json", encoding="utf-8")
    assert _store(tmp_path).settings == merge_settings(None)


def test_storage_keeps_other_keys(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")
    store = _store(tmp_path)
    store.set_avif_speed(3)
    store.close()

    saved = _saved(tmp_path)
    assert saved["theme"] == "dark"
    assert saved[SETTINGS_NAMESPACE]["avifSpeed"] == 3


def test_flush_failure_is_logged_not_raised(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    class BrokenStorage(JsonSettingsStorage):
        def save(self, data):
            raise OSError("disk full")

    store = SettingsStore(BrokenStorage(tmp_path / "settings.json"))
    with caplog.at_level(logging.WARNING):
        store.set_preserve_timestamps(False)
        store.flush()

    assert store.settings.preserve_timestamps is False
    assert "disk full" in caplog.text
    store.close()


def test_listeners_receive_new_settings() -> None:
    store = SettingsStore()
    seen: list[ConversionSettings] = []
    unsubscribe = store.subscribe(seen.append)
    store.set_avif_speed(2)
    unsubscribe()
    store.set_avif_speed(4)

    assert [item.avif_speed for item in seen] == [2]


def test_auto_concurrency_resolves_to_cpu_count() -> None:
    settings = merge_settings(None)
    assert effective_max_concurrent(settings, 8) == 8
    assert describe_concurrency(settings, 8) == "Auto (8)"

    manual = merge_settings({"maxConcurrentConversions": 3})
    assert effective_max_concurrent(manual, 8) == 3
    assert describe_concurrency(manual, 8) == "3"
