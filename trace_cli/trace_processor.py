#!/usr/bin/env python3
"""Load huge trace files with bounded memory and optionally re-export them."""

import argparse, logging, os, pathlib, sys, time
from typing import Optional

from tracecore import (ConsoleDiagnostics, LoaderSettings, LoggingProgress,
                       TraceModel, load_from_file, load_from_url, save_trace)

logger = logging.getLogger(__name__)


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def process(source: str, settings: LoaderSettings, export: Optional[pathlib.Path] = None) -> Optional[TraceModel]:
    """Load source into a TraceModel. Returns None if the load failed."""
    start = time.time()
    model = TraceModel()
    progress = LoggingProgress(logger)
    diagnostics = ConsoleDiagnostics(logger)

    if is_url(source):
        loader = load_from_url(model, source, progress, diagnostics, settings)
        failed = loader.canceled
    else:
        loader, delegate = load_from_file(model, source, progress, diagnostics, settings)
        failed = loader.canceled or delegate.error is not None
    if failed or not model.complete:
        logger.error("Loading %s failed after %.2fs", source, time.time() - start)
        return None

    stats = model.summary()
    logger.info("Done %s events in %s batches in %.2fs", stats["events"], stats["batches"], time.time() - start)
    if stats["phases"]:
        logger.info("Phases: %s", ", ".join(f"{ph}={n}" for ph, n in sorted(stats["phases"].items())))
    if stats["first_ts"] is not None:
        logger.info("Time span: %s .. %s (%s)", stats["first_ts"], stats["last_ts"], stats["duration"])

    if export:
        with open(export, "w", encoding="utf-8") as out:
            save_trace(out, model.iter_fragments())
        logger.info("Wrote %s events to %s", stats["events"], export)
    return model


def cli(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Stream-load a JSON trace (bare array or {\"traceEvents\": [...]})")
    ap.add_argument("source", help="trace file path or http(s) URL")
    ap.add_argument("--chunk-size", type=int, help="override read chunk size in bytes")
    ap.add_argument("--wrapper-key", help="object key holding the event array")
    ap.add_argument("--export", type=pathlib.Path, help="write the events back out as a bare JSON array")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = ap.parse_args(argv)

    debug = args.verbose or os.environ.get("DEBUG", "").lower() in ("1", "true", "yes")
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        settings = LoaderSettings.from_env()
    except ValueError as e:
        ap.error(str(e))
    if args.chunk_size:
        if args.chunk_size <= 0:
            ap.error("--chunk-size must be positive")
        settings.chunk_size = args.chunk_size
    if args.wrapper_key:
        settings.wrapper_key = args.wrapper_key

    model = process(args.source, settings, args.export)
    return 0 if model is not None else 1


if __name__ == "__main__":
    sys.exit(cli())
