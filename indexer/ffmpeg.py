"""
ffprobe / ffmpeg invocation.

Subprocesses run in their own session and are polled so a cancel request can
kill the whole process group while it is still running.
"""
from __future__ import annotations

import json
import os
import signal
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from . import log
from .cancel import Cancellation
from .errors import Canceled, ProbeError, TranscodeError
from .models import VideoRecord, file_name

_POLL_SECONDS = 0.1
THUMB_PATTERN = "thum%03d.jpg"


def _kill_group(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (OSError, AttributeError):
        proc.kill()


def run_cancellable(cmd: Sequence[str], cancel: Optional[Cancellation] = None) -> subprocess.CompletedProcess:
    """
    Run cmd to completion capturing text output. If ``cancel`` fires while it
    runs, the process group is killed and Canceled is raised.
    """
    proc = subprocess.Popen(list(cmd), stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, start_new_session=True)
    while True:
        try:
            out, err = proc.communicate(timeout=_POLL_SECONDS)
            return subprocess.CompletedProcess(list(cmd), proc.returncode, out, err)
        except subprocess.TimeoutExpired:
            if cancel is not None and cancel.canceled:
                _kill_group(proc)
                proc.communicate()
                raise Canceled(f"canceled: {' '.join(cmd[:2])}...")


def parse_probe(raw: str, path: str) -> VideoRecord:
    try:
        payload = json.loads(raw or "{}")
    except ValueError as e:
        raise ProbeError(f"invalid ffprobe output for {path}: {e}") from e
    if not isinstance(payload, dict):
        raise ProbeError(f"invalid ffprobe output for {path}")
    fmt = payload.get("format") or {}
    try:
        seconds = float(fmt.get("duration"))
    except (TypeError, ValueError) as e:
        raise ProbeError(f"cannot parse duration for {path}: {fmt.get('duration')!r}") from e
    video = VideoRecord(
        name=file_name(path),
        path=path,
        # millisecond precision
        duration=int(seconds * 1000) / 1000.0,
    )
    streams = payload.get("streams") or []
    if streams and isinstance(streams[0], dict):
        video.width = int(streams[0].get("width") or 0)
        video.height = int(streams[0].get("height") or 0)
    return video


def probe(ffprobe: str, path: str, cancel: Optional[Cancellation] = None) -> VideoRecord:
    cmd = [
        ffprobe, "-v", "error",
        "-select_streams", "v:0",
        "-show_entries", "stream=height,width",
        "-show_format",
        "-print_format", "json",
        path,
    ]
    try:
        proc = run_cancellable(cmd, cancel)
    except OSError as e:
        raise ProbeError(f"cannot run ffprobe: {e}", cmd=cmd) from e
    if proc.returncode != 0:
        raise ProbeError("ffprobe failed", cmd=cmd, returncode=proc.returncode, stderr=proc.stderr)
    return parse_probe(proc.stdout, path)


def sampling_fps(spf: int, max_frames: int, duration: float) -> str:
    """
    ffmpeg fps filter value.

    When spf*max_frames seconds is longer than the video the cap never binds,
    so sample one frame every spf seconds; otherwise spread max_frames over
    the whole duration.
    """
    if spf * max_frames > duration:
        return f"1/{spf}"
    return f"{max_frames}/{int(duration)}"


def extract_frames(
    ffmpeg: str,
    path: str,
    thumb_dir: str | Path,
    fps: str,
    width: int,
    height: int,
    progress_url: str = "",
    cancel: Optional[Cancellation] = None,
) -> List[str]:
    """Extract frames into thumb_dir and return their paths in order."""
    tdir = Path(thumb_dir)
    try:
        tdir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise TranscodeError(f"cannot create thumbnail directory {tdir}: {e}") from e

    cmd = [ffmpeg, "-hide_banner", "-v", "error"]
    if progress_url:
        cmd += ["-progress", progress_url]
    cmd += ["-i", path, "-vf", f"fps={fps}", "-s", f"{width}x{height}", str(tdir / THUMB_PATTERN)]
    log.debug("pipeline", "ffmpeg: %s", " ".join(cmd))
    try:
        proc = run_cancellable(cmd, cancel)
    except OSError as e:
        raise TranscodeError(f"cannot run ffmpeg: {e}", cmd=cmd) from e
    if proc.returncode != 0:
        raise TranscodeError("ffmpeg failed", cmd=cmd, returncode=proc.returncode, stderr=proc.stderr)

    try:
        thumbs = sorted(str(p) for p in tdir.iterdir() if p.is_file())
    except OSError as e:
        raise TranscodeError(f"cannot read thumbnails in {tdir}: {e}") from e
    if not thumbs:
        raise TranscodeError(f"ffmpeg produced no frames for {path}", cmd=cmd)
    return thumbs
