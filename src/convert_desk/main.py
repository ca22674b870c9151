from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from . import __version__
from .config import JsonSettingsStorage, SettingsStore, describe_concurrency
from .core import (
    ConversionDispatcher,
    FileListSynchronizer,
    IngestionPipeline,
    ProgressReducer,
    build_rows,
)
from .engine import LocalEngine
from .models import PROGRESS_EVENT, ConversionProgress, ImageFormat, available_formats
from .utils.errors import CommandError, ValidationError


class FixedDirectoryPicker:
    """命令列版本的資料夾選擇器：直接回傳 --output 指定的路徑。"""

    def __init__(self, directory: Optional[str]) -> None:
        self.directory = directory

    async def pick_directory(self) -> Optional[str]:
        if not self.directory:
            return None
        path = Path(self.directory).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return str(path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    print(f"convert-desk v{__version__}")
    storage = JsonSettingsStorage(Path(args.settings) if args.settings else None)
    store = SettingsStore(storage)
    try:
        if args.command == "settings":
            return _run_settings(args, store)
        if args.command == "convert":
            return asyncio.run(_run_convert(args, store))
        parser.print_help()
        return 0
    finally:
        store.close()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="convert-desk")
    parser.add_argument("--settings", help="Path to settings file", default=None)

    subparsers = parser.add_subparsers(dest="command")

    convert = subparsers.add_parser("convert", help="Add files and run one conversion batch")
    convert.add_argument("paths", nargs="*", help="Image files to add")
    convert.add_argument("--url", action="append", default=[], help="Image URL to add")
    convert.add_argument("--format", dest="target_format", help="Target format (saved to settings)")
    convert.add_argument("--quality", type=int, help="Quality for the target format (saved to settings)")
    convert.add_argument("--dev", action="store_true", help="Allow the diagnostic 'error' format")
    output = convert.add_mutually_exclusive_group()
    output.add_argument("--output", help="Output folder")
    output.add_argument(
        "--source-dir",
        action="store_true",
        help="Write each output next to its source file",
    )

    settings = subparsers.add_parser("settings", help="Show or reset saved settings")
    settings.add_argument("--reset", action="store_true", help="Restore defaults")

    return parser


def _run_settings(args: argparse.Namespace, store: SettingsStore) -> int:
    if args.reset:
        store.reset()
        print("Settings reset to defaults")
    print(json.dumps(store.to_dict(), ensure_ascii=False, indent=2))
    print(f"Concurrency: {describe_concurrency(store.settings, os.cpu_count() or 1)}")
    return 0


def _apply_overrides(args: argparse.Namespace, store: SettingsStore) -> None:
    if args.target_format:
        allowed = {fmt.value for fmt in available_formats(include_diagnostic=args.dev)}
        if args.target_format not in allowed:
            raise ValidationError(f"Unknown format: {args.target_format}")
        store.set_target_format(ImageFormat(args.target_format))
    if args.quality is not None:
        store.set_quality_for_format(store.settings.target_format, args.quality)
    if args.source_dir:
        store.set_use_source_directory(True)
    elif args.output:
        store.set_use_source_directory(False)


def _print_progress(payload: Mapping[str, Any]) -> None:
    event = ConversionProgress.from_payload(payload)
    line = f"[{event.status.value}] {event.file_name}"
    if event.error_message:
        line += f" ({event.error_message})"
    if event.saved_path:
        line += f" -> {event.saved_path}"
    print(line)


async def _run_convert(args: argparse.Namespace, store: SettingsStore) -> int:
    try:
        _apply_overrides(args, store)
    except ValidationError as exc:
        print(f"Error: {exc}")
        return 2

    engine = LocalEngine()
    file_list = FileListSynchronizer(engine)
    reducer = ProgressReducer(file_list)
    reducer.attach(engine)
    engine.listen(PROGRESS_EVENT, _print_progress)
    pipeline = IngestionPipeline(file_list)
    dispatcher = ConversionDispatcher(
        engine,
        store,
        file_list,
        reducer,
        picker=FixedDirectoryPicker(args.output),
    )

    report = await pipeline.ingest_paths(str(Path(path).resolve()) for path in args.paths)
    for error in report.errors.errors:
        if error.source is None:
            print(f"Warning: {error.message}")
        else:
            print(f"Skipped {error.source}: {error.message}")
    for url in args.url:
        try:
            await pipeline.add_url(url)
        except (ValidationError, CommandError) as exc:
            print(f"Skipped {url}: {exc}")

    print(f"Files: {len(file_list.files)}, concurrency: {await dispatcher.concurrency_label()}")
    try:
        outcome = await dispatcher.convert()
    except (ValidationError, CommandError) as exc:
        print(f"Error: {exc}")
        return 1
    await reducer.settle()

    if outcome is None:
        print("Nothing converted (no eligible files or no output folder)")
        return 1

    for row in build_rows(file_list.files, reducer):
        detail = row.status.message or row.reveal_target or ""
        print(f"{row.extension_label:<4} {row.entry.name}: {row.status.kind.value} {detail}".rstrip())
    print(
        f"Converted {outcome.converted_count}/{outcome.requested_count}, "
        f"saved {outcome.saved_ratio:.1%}"
    )
    return 0 if outcome.unconverted_count == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
