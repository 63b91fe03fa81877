import stat
import sys
from pathlib import Path

import pytest

from indexer import Settings

FAKE_FFPROBE = """#!{python}
import json, os, sys
if os.environ.get("FAKE_FFPROBE_FAIL"):
    sys.stderr.write("Invalid data found when processing input\\n")
    sys.exit(1)
print(json.dumps({{
    "programs": [],
    "streams": [{{"width": int(os.environ.get("FAKE_WIDTH", "1280")), "height": int(os.environ.get("FAKE_HEIGHT", "720"))}}],
    "format": {{"filename": sys.argv[-1], "duration": os.environ.get("FAKE_DURATION", "90.5")}},
}}))
"""

FAKE_FFMPEG = """#!{python}
import os, socket, sys, time

from PIL import Image

args = sys.argv[1:]
if os.environ.get("FAKE_FFMPEG_FAIL"):
    sys.stderr.write("Conversion failed!\\n")
    sys.exit(1)
out = args[-1]
w, h = (int(x) for x in args[args.index("-s") + 1].split("x"))
progress = args[args.index("-progress") + 1] if "-progress" in args else ""
if progress.startswith("tcp://"):
    host, port = progress[len("tcp://"):].rsplit(":", 1)
    with socket.create_connection((host, int(port)), timeout=5) as s:
        s.sendall(b"frame=1\\nout_time_ms=1000000\\nspeed=2.0x\\nprogress=continue\\n")
        s.sendall(b"out_time_ms=2000000\\nspeed=2.")
        s.sendall(b"5x\\nprogress=end\\n")
delay = float(os.environ.get("FAKE_FFMPEG_SLEEP", "0") or 0)
if delay:
    time.sleep(delay)
for i in range(1, int(os.environ.get("FAKE_FFMPEG_FRAMES", "5")) + 1):
    Image.new("RGB", (w, h), ((i * 40) % 256, 80, 160)).save(out % i, "JPEG")
if os.environ.get("FAKE_FFMPEG_ARGS"):
    with open(os.environ["FAKE_FFMPEG_ARGS"], "w") as f:
        f.write(" ".join(args))
"""


def _write_exe(path: Path, body: str) -> Path:
    path.write_text(body.format(python=sys.executable))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture()
def fake_tools(tmp_path):
    """Stand-in ffprobe/ffmpeg executables driven by FAKE_* env vars."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    ffprobe = _write_exe(bin_dir / "ffprobe", FAKE_FFPROBE)
    ffmpeg = _write_exe(bin_dir / "ffmpeg", FAKE_FFMPEG)
    return str(ffprobe), str(ffmpeg)


@pytest.fixture()
def media_root(tmp_path):
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture()
def settings(tmp_path, media_root, fake_tools):
    ffprobe, ffmpeg = fake_tools
    return Settings(roots=[media_root], cache_dir=tmp_path / "cache", ffprobe=ffprobe, ffmpeg=ffmpeg)
