import pytest

from convert_desk.config import SettingsStore
from convert_desk.core import ConversionDispatcher, FileListSynchronizer, ProgressReducer
from convert_desk.models import USE_SOURCE_DIR, ImageFormat
from convert_desk.utils.errors import CommandError, NoOutputDirectoryError, ValidationError


async def _dispatcher(backend, picker, *paths: str, store: SettingsStore | None = None):
    file_list = FileListSynchronizer(backend)
    for path in paths:
        await file_list.add_from_path(path)
    reducer = ProgressReducer(file_list)
    reducer.attach(backend)
    return ConversionDispatcher(backend, store or SettingsStore(), file_list, reducer, picker=picker)


@pytest.mark.asyncio
async def test_disabled_with_empty_list(backend, picker) -> None:
    dispatcher = await _dispatcher(backend, picker)

    assert not dispatcher.can_convert
    assert await dispatcher.convert() is None
    assert picker.calls == 0
    assert backend.count("convert_images") == 0


@pytest.mark.asyncio
async def test_disabled_when_everything_converted(backend, picker) -> None:
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg")
    backend.mark_converted(dispatcher.file_list.files[0].id, "/out/x.webp")
    await dispatcher.file_list.refresh()

    assert dispatcher.eligible_count == 0
    assert not dispatcher.can_convert


@pytest.mark.asyncio
async def test_disabled_while_files_converting(backend, picker) -> None:
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg", "/a/y.png")
    file_id = dispatcher.file_list.files[0].id
    backend.emit({"file_id": file_id, "file_name": "x.jpg", "status": "converting"})

    assert not dispatcher.can_convert
    assert await dispatcher.convert() is None


@pytest.mark.asyncio
async def test_picker_cancel_sends_nothing(backend, picker) -> None:
    picker.result = None
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg")

    assert await dispatcher.convert() is None
    assert picker.calls == 1
    assert backend.count("convert_images") == 0
    assert not dispatcher.in_flight


@pytest.mark.asyncio
async def test_relative_picker_path_is_rejected(backend, picker) -> None:
    picker.result = "relative/out"
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg")

    with pytest.raises(ValidationError):
        await dispatcher.convert()
    assert backend.count("convert_images") == 0


@pytest.mark.asyncio
async def test_request_uses_settings_and_picked_folder(backend, picker) -> None:
    store = SettingsStore()
    store.set_target_format(ImageFormat.AVIF)
    store.set_quality_for_format(ImageFormat.AVIF, 50)
    store.set_avif_speed(4)
    store.set_preserve_exif(False)
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg", "/a/y.png", store=store)

    outcome = await dispatcher.convert()

    [request] = backend.requests
    assert request.target_format is ImageFormat.AVIF
    assert request.quality == 50
    assert request.avif_speed == 4
    assert request.preserve_exif is False
    assert request.preserve_timestamps is True
    assert request.output_dir == "/tmp/converted"
    assert outcome.requested_count == 2
    assert outcome.converted_count == 2
    assert outcome.saved_ratio == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_source_directory_mode_skips_picker(backend, picker) -> None:
    store = SettingsStore()
    store.set_use_source_directory(True)
    store.set_create_subfolder(True)
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg", store=store)

    await dispatcher.convert()

    [request] = backend.requests
    assert picker.calls == 0
    assert request.output_dir == USE_SOURCE_DIR
    assert request.create_subfolder is True
    assert request.subfolder_name == "converted"


@pytest.mark.asyncio
async def test_auto_concurrency_resolves_to_cpu_count(backend, picker) -> None:
    backend.cpu_count = 6
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg")

    assert await dispatcher.concurrency_label() == "Auto (6)"
    await dispatcher.convert()

    assert backend.requests[0].max_concurrent == 6
    assert backend.count("get_cpu_count") == 1


@pytest.mark.asyncio
async def test_manual_concurrency_passed_through(backend, picker) -> None:
    store = SettingsStore()
    store.set_max_concurrent_conversions(2)
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg", store=store)

    await dispatcher.convert()

    assert backend.requests[0].max_concurrent == 2


@pytest.mark.asyncio
async def test_batch_marks_files_converted(backend, picker) -> None:
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg", "/a/y.png")

    await dispatcher.convert()
    await dispatcher.reducer.settle()

    assert all(entry.converted for entry in dispatcher.file_list.files)
    assert not dispatcher.reducer.is_converting
    assert not dispatcher.can_convert


@pytest.mark.asyncio
async def test_failure_propagates_without_retry(backend, picker) -> None:
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg")
    backend.failures["convert_images"] = CommandError(
        "convert_images", "No files to convert (all files already converted)"
    )
    settings_before = dispatcher.settings.settings
    files_before = dispatcher.file_list.files

    with pytest.raises(CommandError):
        await dispatcher.convert()

    assert backend.count("convert_images") == 1
    assert not dispatcher.in_flight
    assert dispatcher.settings.settings == settings_before
    assert dispatcher.file_list.files == files_before
    assert dispatcher.can_convert


@pytest.mark.asyncio
async def test_per_file_errors_count_as_unconverted(backend, picker) -> None:
    dispatcher = await _dispatcher(backend, picker, "/a/x.jpg", "/a/y.png")
    bad_id = dispatcher.file_list.files[1].id
    backend.convert_error_ids[bad_id] = "Failed to decode image"

    outcome = await dispatcher.convert()
    await dispatcher.reducer.settle()

    assert outcome.unconverted_count == 1
    assert dispatcher.reducer.errors == {bad_id: "Failed to decode image"}
    assert dispatcher.eligible_count == 1


@pytest.mark.asyncio
async def test_no_picker_without_source_directory_mode(backend) -> None:
    dispatcher = await _dispatcher(backend, None, "/a/x.jpg")

    with pytest.raises(NoOutputDirectoryError):
        await dispatcher.convert()
    assert not dispatcher.in_flight
