#!/usr/bin/env python3
"""
CLI to index a directory tree and generate previews without running the server.

Usage:
    python tools/scan.py \
        --root /path/to/videos [--root /more/videos] \
        [--cache-dir .vidindex] [--ffprobe ffprobe] [--ffmpeg ffmpeg]

Notes:
- Respects MEDIA_ROOT / CACHE_DIR / FFPROBE / FFMPEG if set; flags override.
- Ctrl-C cancels: the running ffmpeg is killed and the cache is flushed.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

# Make the project root importable when run as `python tools/scan.py`
_ROOT = str(Path(__file__).resolve().parents[1])
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)

from indexer import Indexer, Settings  # noqa: E402


def build_settings(args: argparse.Namespace) -> Settings:
    roots = [Path(r).expanduser().resolve() for r in (args.root or [])] or None
    cache_dir = Path(args.cache_dir).expanduser() if args.cache_dir else None
    settings = Settings.from_env(roots=roots, cache_dir=cache_dir)
    if args.ffprobe:
        settings.ffprobe = args.ffprobe
    if args.ffmpeg:
        settings.ffmpeg = args.ffmpeg
    return settings


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Index videos and generate cover/sprite previews")
    ap.add_argument("--root", action="append", help="Directory to scan (repeatable; default MEDIA_ROOT)")
    ap.add_argument("--cache-dir", default=None, help="Where cache.json and previews are written (default CACHE_DIR or ./.vidindex)")
    ap.add_argument("--ffprobe", default=None, help="ffprobe executable")
    ap.add_argument("--ffmpeg", default=None, help="ffmpeg executable")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log every scan decision")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(asctime)s %(name)s %(message)s")

    settings = build_settings(args)
    if not settings.roots:
        print("[cli] No root given (use --root or MEDIA_ROOT)", file=sys.stderr)
        return 2
    for r in settings.roots:
        if not r.is_dir():
            print(f"[cli] Root not found or not a dir: {r}", file=sys.stderr)
            return 2

    indexer = Indexer(settings)

    def _sigint_handler(signum, frame):
        indexer.cancel.cancel()
        print("\n[cli] Cancellation requested. Flushing cache...", file=sys.stderr)

    signal.signal(signal.SIGINT, _sigint_handler)

    report = indexer.run()
    print(f"[cli] generated={len(report.generated)} failed={len(report.failed)} canceled={report.canceled} total={len(indexer.videos)}")
    return 1 if report.failed and not report.generated else 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
