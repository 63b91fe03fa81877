"""
Scan + generation pipeline.

One run: load cache -> prune vanished files -> scan roots -> publish and
persist -> generate previews for dirty paths one at a time -> publish and
persist again -> signal completion.
"""
from __future__ import annotations

import shutil
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from . import ffmpeg, log, scanner
from .cache import CacheStore, file_exists
from .cancel import Cancellation
from .config import Settings
from .errors import CacheError, Canceled, IndexerError, RelayError
from .models import PreviewArtifact, ProgressSnapshot, VideoRecord
from .relay import ProgressRelay, ProgressSource
from .scanner import ScanResult
from .sprite import aspect_fit, compose_sprite, copy_cover
from .store import VideoStore


def _fmt_secs(secs: Optional[float]) -> str:
    if secs is None:
        return "--:--:--"
    s = int(max(0.0, secs))
    return f"{s // 3600:d}:{(s % 3600) // 60:02d}:{s % 60:02d}"


@dataclass
class GenerationReport:
    generated: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    canceled: bool = False


class Indexer:
    """
    Owns the cache, the published video list and the cancel signal for one
    directory tree. ``run()`` is meant for a single background thread; HTTP
    handlers only ever read ``videos``.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        videos: Optional[VideoStore] = None,
        cache: Optional[CacheStore] = None,
        cancel: Optional[Cancellation] = None,
    ) -> None:
        self.settings = settings
        self.videos = videos if videos is not None else VideoStore()
        self.cache = cache if cache is not None else CacheStore()
        self.cancel = cancel if cancel is not None else Cancellation()
        self._commit_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._started = threading.Event()

    # -- lifecycle --
    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        th = threading.Thread(target=self.run, name="indexer", daemon=True)
        self._thread = th
        self._started.set()
        th.start()
        return th

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Request cancellation and wait for the run to flush. Returns True if it finished in time."""
        self.cancel.cancel()
        if not self._started.is_set():
            # never started; nothing will signal completion
            return True
        return self.cancel.wait_done(timeout)

    def run(self) -> GenerationReport:
        self._started.set()
        try:
            result = self.scan()
            if self.cancel.canceled or not result.dirty:
                return GenerationReport(canceled=self.cancel.canceled)
            return self.generate(result.dirty)
        finally:
            self.cancel.complete()

    # -- persistence --
    def load_cache(self) -> None:
        cache_file = self.settings.cache_file
        if not file_exists(cache_file):
            return
        try:
            self.cache.read(cache_file)
        except CacheError as e:
            log.warning("cache", "cache unreadable, starting empty: %s", e)
            self.cache.clear()

    def write_cache(self) -> None:
        try:
            if self.cache.write(self.settings.cache_file):
                log.debug("cache", "cache written to %s", self.settings.cache_file)
        except CacheError as e:
            log.warning("cache", "%s", e)

    def publish(self) -> None:
        self.videos.replace(self.cache.all_videos())

    # -- scan --
    def scan(self) -> ScanResult:
        self.load_cache()
        gone = self.cache.prune_missing()
        if gone:
            log.log("cache", "pruned %d vanished file(s)", len(gone))
        result = scanner.scan(self.settings.roots, self.cache, self.cancel)
        self.publish()
        self.write_cache()
        return result

    # -- generation --
    def generate(self, dirty: List[str]) -> GenerationReport:
        report = GenerationReport()
        relay = ProgressRelay()
        try:
            try:
                relay.start()
            except RelayError as e:
                log.error("pipeline", "%s", e)
                report.failed = list(dirty)
                return report
            count = len(dirty)
            for i, path in enumerate(dirty, start=1):
                if self.cancel.canceled:
                    report.canceled = True
                    break
                try:
                    video = self.process(path, i, count, relay)
                except Canceled:
                    report.canceled = True
                    break
                except (IndexerError, OSError) as e:
                    log.warning("pipeline", "preview generation failed for %s: %s", path, e)
                    report.failed.append(path)
                    continue
                self.commit(video)
                report.generated.append(path)
        finally:
            relay.stop()
            self.publish()
            self.write_cache()
        log.log("pipeline", "generation finished: generated=%d failed=%d canceled=%s",
                len(report.generated), len(report.failed), report.canceled)
        return report

    def commit(self, video: VideoRecord) -> None:
        with self._commit_lock:
            self.cache.add_video(video)
            self.videos.add(video)

    def process(self, path: str, index: int, count: int, relay: ProgressRelay) -> VideoRecord:
        s = self.settings
        pc = s.preview
        video = ffmpeg.probe(s.ffprobe, path, self.cancel)

        s.cache_dir.mkdir(parents=True, exist_ok=True)
        preview_dir = Path(tempfile.mkdtemp(dir=s.cache_dir))
        thumb_dir = preview_dir / "thumbs"
        ok = False
        try:
            log.log("pipeline", "generating %d/%d: %s", index, count, path)
            relay.arm(ProgressSource(duration=video.duration, callback=self._progress_renderer(index, count)))

            box_w, box_h = aspect_fit(video.width, video.height, pc.box_w, pc.box_h)
            fps = ffmpeg.sampling_fps(pc.spf, pc.max_frames, video.duration)
            thumbs = ffmpeg.extract_frames(s.ffmpeg, path, thumb_dir, fps, box_w, box_h, relay.addr, self.cancel)

            cover = copy_cover(thumbs, preview_dir / "cover.jpg")
            sprite = compose_sprite(thumbs, preview_dir / "thumbs.jpg", pc.width, pc.height, pc.rows, pc.cols, quality=pc.quality)
            video.preview = PreviewArtifact(cover=str(cover), thumbs=sprite)
            ok = True
            return video
        finally:
            shutil.rmtree(thumb_dir, ignore_errors=True)
            if not ok:
                shutil.rmtree(preview_dir, ignore_errors=True)

    @staticmethod
    def _progress_renderer(index: int, count: int):
        def render(p: ProgressSnapshot) -> None:
            log.log("progress", "progress: %d/%d, %s/%s, remaining %s",
                    index, count, _fmt_secs(p.out_time), _fmt_secs(p.duration), _fmt_secs(p.remaining()))
        return render
