"""Command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .audio.types import AudioInputDevice
from .errors import VoxlineError
from .metrics import serve_metrics
from .services.batch_service import FileState
from .services.workspace import Workspace, list_models
from .settings import AppSettings, get_settings

LOGGER = logging.getLogger("voxline.cli")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s │ %(levelname)-7s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voxline", description="Offline Whisper transcription.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging.")
    parser.add_argument("--metrics-port", type=int, default=None, help="Expose Prometheus metrics on this port.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("models", help="List models in the models directory.")
    sub.add_parser("devices", help="List audio input devices.")

    transcribe = sub.add_parser("transcribe", help="Transcribe recordings segment by segment.")
    transcribe.add_argument("files", nargs="*", type=Path, help="Files to transcribe (default: input directory).")
    transcribe.add_argument("--model", required=False, help="Model file name or path.")
    transcribe.add_argument("--output-dir", type=Path, default=None)
    transcribe.add_argument("--temp-dir", type=Path, default=None)
    transcribe.add_argument(
        "--overwrite",
        choices=("ask", "always", "never"),
        default="ask",
        help="What to do when a transcript already exists (default: ask).",
    )

    live = sub.add_parser("live", help="Transcribe the microphone until interrupted.")
    live.add_argument("--model", required=False, help="Model file name or path.")
    live.add_argument("--output-dir", type=Path, default=None)
    live.add_argument("--device", default=None, help="Capture device id; prompts when several exist.")
    live.add_argument("--duration", type=float, default=None, help="Stop after this many seconds.")
    return parser


def _apply_overrides(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    updates = {}
    if getattr(args, "output_dir", None) is not None:
        updates["output_dir"] = str(args.output_dir)
    if getattr(args, "temp_dir", None) is not None:
        updates["temp_dir"] = str(args.temp_dir)
    return settings.model_copy(update=updates) if updates else settings


def resolve_model(settings: AppSettings, choice: Optional[str]) -> Path:
    models = list_models(settings.models_dir)
    if choice:
        candidate = Path(choice)
        if candidate.exists():
            return candidate
        for model in models:
            if model.name == choice:
                return model
        raise VoxlineError(f"Model {choice!r} not found in {settings.models_dir}")
    if not models:
        raise VoxlineError(f"No model files found in {settings.models_dir}")
    if len(models) == 1:
        return models[0]
    return models[_prompt_index("Select a model", [model.name for model in models])]


def _prompt_index(title: str, labels: Sequence[str]) -> int:
    print(title + ":")
    for index, label in enumerate(labels, start=1):
        print(f"  {index}. {label}")
    while True:
        answer = input("> ").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(labels):
            return int(answer) - 1
        print(f"Enter a number between 1 and {len(labels)}")


def _confirm_overwrite_factory(mode: str):
    if mode == "always":
        return lambda path: True
    if mode == "never":
        return lambda path: False

    def ask(path: Path) -> bool:
        answer = input(f"{path} already exists. Overwrite? [y/N] ").strip().lower()
        return answer in {"y", "yes"}

    return ask


def _device_selector(preferred: Optional[str]):
    async def select(devices: Sequence[AudioInputDevice]) -> AudioInputDevice:
        if preferred is not None:
            for device in devices:
                if device.id == preferred:
                    return device
            LOGGER.warning("Device %s not found; choose one", preferred)
        labels = [device.display_name for device in devices]
        index = await asyncio.to_thread(_prompt_index, "Select an input device", labels)
        return devices[index]

    return select


async def _run_live(workspace: Workspace, args: argparse.Namespace) -> int:
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError):
        signal.signal(signal.SIGINT, lambda *_: loop.call_soon_threadsafe(cancel.set))
    if args.duration:
        loop.call_later(args.duration, cancel.set)

    def on_segment(text: str) -> None:
        print(text.strip(), flush=True)

    result = await workspace.start_live(_device_selector(args.device), on_segment, cancel)
    if result.device is None:
        return 1
    if result.transcript_path:
        print(f"Transcript saved to {result.transcript_path}")
    return 0


def _print_devices(devices: List[AudioInputDevice]) -> int:
    if not devices:
        print("No audio input devices found.")
        return 1
    for device in devices:
        print(f"{device.id}\t{device.display_name}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = _apply_overrides(get_settings(), args)
    configure_logging("DEBUG" if args.verbose else settings.log_level)
    if args.metrics_port:
        serve_metrics(args.metrics_port)

    workspace = Workspace(settings)
    try:
        if args.command == "models":
            models = list_models(settings.models_dir)
            for model in models:
                print(model.name)
            return 0 if models else 1
        if args.command == "devices":
            return _print_devices(asyncio.run(workspace.list_devices()))

        workspace.load_model(resolve_model(settings, args.model))
        if args.command == "transcribe":
            results = asyncio.run(
                workspace.transcribe_all(
                    args.files or None,
                    confirm_overwrite=_confirm_overwrite_factory(args.overwrite),
                )
            )
            failed = [result for result in results if result.state is FileState.FAILED]
            for result in results:
                print(f"{result.source.name}: {result.state.value}")
            return 1 if failed else 0
        return asyncio.run(_run_live(workspace, args))
    except (VoxlineError, FileNotFoundError) as exc:
        LOGGER.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
