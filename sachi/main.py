#!/usr/bin/env python3
"""
SACHI Sound Listener - Main Entry Point

Real-time sound classification with few-shot custom labels, stereo
direction hints and a deduplicated detection log.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional
from loguru import logger
from rich.console import Console
from rich.table import Table

from .core.config import Config, reload_config


def setup_logging(log_level: str = "INFO"):
    """Configure logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
    )

    # Create logs directory
    Path("logs").mkdir(exist_ok=True)
    logger.add(
        "logs/sachi_{time}.log",
        rotation="1 day",
        retention="7 days",
        level="DEBUG"
    )


def _load_store(config: Config):
    from .core.persistence import load_model
    from .core.prototype_store import PrototypeStore
    return load_model(config.model_path, PrototypeStore())


def _build_classifier(config: Config, store):
    from .audio.embedding import load_provider
    from .audio.features import FallbackFeatureExtractor
    from .pipeline.classifier import SoundClassifier

    fallback_cfg = config.audio.fallback
    return SoundClassifier(
        provider=load_provider(config.audio.embedding),
        fallback=FallbackFeatureExtractor(
            fallback_cfg.sample_rate, fallback_cfg.window, fallback_cfg.bins
        ),
        store=store,
        top_k=config.audio.embedding.secondary_top_k
    )


console = Console()


def _print_entry(entry) -> None:
    console.print(
        f"[dim]{entry.when}[/dim]  [bold]{entry.label:<20}[/bold] "
        f"{entry.similarity:.2f}  {entry.direction}",
        highlight=False
    )


def cmd_listen(config: Config, args) -> int:
    from .audio.capture import AudioCapture, CaptureError
    from .core.event_log import EventLogger
    from .core.persistence import load_log
    from .pipeline.session import ListeningSession

    store = _load_store(config)
    capture_cfg = config.audio.capture
    session = ListeningSession(
        config=config,
        classifier=_build_classifier(config, store),
        store=store,
        event_logger=EventLogger(config.event_log.dedup_window_ms, load_log(config.log_path)),
        capture=AudioCapture(
            sample_rate=capture_cfg.sample_rate,
            channels=capture_cfg.channels,
            chunk_size=capture_cfg.chunk_size,
            device=capture_cfg.device
        ),
        on_event=_print_entry,
        log_path=config.log_path
    )

    try:
        asyncio.run(session.run_forever(args.duration))
    except CaptureError as e:
        logger.error(f"Cannot start listening: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


def cmd_train(config: Config, args) -> int:
    from .core.persistence import save_model
    from .pipeline.training import train_from_files

    store = _load_store(config)
    try:
        prototype = train_from_files(_build_classifier(config, store), store, args.label, args.files)
    except (OSError, ValueError) as e:
        logger.error(f"Training failed: {e}")
        return 1

    save_model(config.model_path, store)
    console.print(f"{prototype.label}: {prototype.example_count} examples")
    return 0


def cmd_record(config: Config, args) -> int:
    from .audio.capture import CaptureError, record_sample
    from .core.persistence import save_model
    from .pipeline.training import train_from_samples

    store = _load_store(config)
    classifier = _build_classifier(config, store)
    capture_cfg = config.audio.capture

    console.print(f"Recording {args.seconds:.1f}s for '{args.label}'...")
    try:
        samples = record_sample(args.seconds, capture_cfg.sample_rate, capture_cfg.device)
        prototype = train_from_samples(
            classifier, store, args.label, samples, capture_cfg.sample_rate
        )
    except (CaptureError, ValueError) as e:
        logger.error(f"Recording failed: {e}")
        return 1

    save_model(config.model_path, store)
    console.print(f"{prototype.label}: {prototype.example_count} examples")
    return 0


def cmd_labels(config: Config, args) -> int:
    store = _load_store(config)
    if not len(store):
        console.print("No custom labels trained")
        return 0

    table = Table(title="Custom Labels")
    table.add_column("Label")
    table.add_column("Examples", justify="right")
    table.add_column("Dimension", justify="right")
    for prototype in store:
        table.add_row(prototype.label, str(prototype.example_count), str(prototype.dimension))
    console.print(table)
    return 0


def cmd_delete(config: Config, args) -> int:
    from .core.persistence import save_model

    store = _load_store(config)
    if not store.delete(args.label):
        logger.error(f"No such label: {args.label}")
        return 1
    save_model(config.model_path, store)
    return 0


def cmd_reset(config: Config, args) -> int:
    from .core.persistence import save_model

    store = _load_store(config)
    store.reset_all()
    save_model(config.model_path, store)
    return 0


def cmd_import_model(config: Config, args) -> int:
    from .core.persistence import ModelFileError, import_model, save_model

    store = _load_store(config)
    mode = "replace" if args.replace else "merge"
    try:
        count = import_model(args.path, store, mode)
    except ModelFileError as e:
        logger.error(str(e))
        return 1

    save_model(config.model_path, store)
    console.print(f"Imported {count} labels ({mode})")
    return 0


def cmd_export_model(config: Config, args) -> int:
    from .core.persistence import export_model

    export_model(args.path, _load_store(config))
    return 0


def cmd_export_logs(config: Config, args) -> int:
    from .core.export_manager import ExportManager
    from .core.persistence import load_log

    try:
        path = ExportManager().export(load_log(config.log_path), args.path, args.format)
    except ValueError as e:
        logger.error(f"Export failed: {e}")
        return 1

    console.print(path, soft_wrap=True, highlight=False)
    return 0


def cmd_clear_logs(config: Config, args) -> int:
    from .core.event_log import EventLogger
    from .core.persistence import load_log, save_log

    event_logger = EventLogger(config.event_log.dedup_window_ms, load_log(config.log_path))
    event_logger.clear()
    save_log(config.log_path, event_logger.entries)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sachi",
        description="SACHI - real-time sound listener with custom sound labels"
    )
    parser.add_argument(
        "--config", "-c",
        default="config/settings.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (defaults to system.log_level)"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    listen = commands.add_parser("listen", help="Classify live audio")
    listen.add_argument("--duration", type=float, default=None, help="Stop after N seconds")
    listen.set_defaults(handler=cmd_listen)

    train = commands.add_parser("train", help="Train a label from WAV files")
    train.add_argument("label")
    train.add_argument("files", nargs="+", metavar="WAV")
    train.set_defaults(handler=cmd_train)

    record = commands.add_parser("record", help="Record a sample and train a label")
    record.add_argument("label")
    record.add_argument("--seconds", type=float, default=1.8)
    record.set_defaults(handler=cmd_record)

    labels = commands.add_parser("labels", help="List trained labels")
    labels.set_defaults(handler=cmd_labels)

    delete = commands.add_parser("delete", help="Delete a trained label")
    delete.add_argument("label")
    delete.set_defaults(handler=cmd_delete)

    reset = commands.add_parser("reset", help="Delete every trained label")
    reset.set_defaults(handler=cmd_reset)

    import_model = commands.add_parser("import-model", help="Import a model file")
    import_model.add_argument("path")
    import_model.add_argument("--replace", action="store_true", help="Drop existing labels first")
    import_model.set_defaults(handler=cmd_import_model)

    export_model = commands.add_parser("export-model", help="Export the model file")
    export_model.add_argument("path")
    export_model.set_defaults(handler=cmd_export_model)

    export_logs = commands.add_parser("export-logs", help="Export the detection log")
    export_logs.add_argument("path")
    export_logs.add_argument("--format", choices=["csv", "json"], default="csv")
    export_logs.set_defaults(handler=cmd_export_logs)

    clear_logs = commands.add_parser("clear-logs", help="Clear the detection log")
    clear_logs.set_defaults(handler=cmd_clear_logs)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = reload_config(args.config)
    setup_logging(args.log_level or config.system.log_level)
    logger.info(f"{config.system.name} v{config.system.version}")

    return args.handler(config, args)


if __name__ == "__main__":
    sys.exit(main())
