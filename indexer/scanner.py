"""
Directory scanner: decides which video files need (re)generation.

Per visited item, in order:
  1. cancellation requested -> stop descending into the current directory
  2. directory whose mtime equals its cached timestamp -> skip the subtree
     (coarse: only the directory's own mtime is compared, so files added or
     removed below an unchanged parent are missed until its mtime changes)
  3. non-video file -> skip
  4. video without a complete cache entry -> dirty, record mtime, drop stale record
  5. complete entry, same mtime -> unchanged
  6. complete entry, different mtime -> evict, record mtime, dirty
"""
from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from . import log
from .cache import CacheStore
from .cancel import Cancellation
from .sniff import is_video

_CONTINUE = 0
_SKIP = 1


@dataclass
class ScanResult:
    dirty: List[str] = field(default_factory=list)
    unchanged: int = 0
    skipped_dirs: int = 0
    errors: int = 0
    canceled: bool = False


class Scanner:
    def __init__(self, cache: CacheStore, cancel: Optional[Cancellation] = None) -> None:
        self.cache = cache
        self.cancel = cancel or Cancellation()

    def scan(self, roots: Iterable[str | Path]) -> ScanResult:
        result = ScanResult()
        for root in roots:
            self._scan_root(os.path.abspath(str(root)), result)
        result.canceled = self.cancel.canceled
        log.log("scan", "scan finished: dirty=%d unchanged=%d skipped_dirs=%d errors=%d canceled=%s",
                len(result.dirty), result.unchanged, result.skipped_dirs, result.errors, result.canceled)
        return result

    def _scan_root(self, root: str, result: ScanResult) -> None:
        try:
            st = os.lstat(root)
        except OSError as e:
            result.errors += 1
            log.warning("scan", "file or directory error, %s: %s, skipped", root, e)
            return
        if self._visit(root, st, result) == _SKIP:
            return
        if stat.S_ISDIR(st.st_mode):
            self._walk_dir(root, result)

    def _walk_dir(self, d: str, result: ScanResult) -> None:
        try:
            names = sorted(os.listdir(d))
        except OSError as e:
            result.errors += 1
            log.warning("scan", "cannot list %s: %s, skipped", d, e)
            return
        for name in names:
            p = os.path.join(d, name)
            try:
                st = os.lstat(p)
            except OSError as e:
                result.errors += 1
                log.warning("scan", "file or directory error, %s: %s, skipped", p, e)
                continue
            is_dir = stat.S_ISDIR(st.st_mode)
            if self._visit(p, st, result) == _SKIP:
                if is_dir:
                    continue
                # a file asking to skip ends the walk of its directory
                return
            if is_dir:
                self._walk_dir(p, result)

    def _visit(self, path: str, st: os.stat_result, result: ScanResult) -> int:
        if self.cancel.canceled:
            return _SKIP

        mtime = st.st_mtime_ns
        if stat.S_ISDIR(st.st_mode):
            if mtime == self.cache.mod_time(path):
                result.skipped_dirs += 1
                log.debug("scan", "scan: %s. unchanged, skipped", path)
                return _SKIP
            log.debug("scan", "scan: %s.", path)
            return _CONTINUE

        if not is_video(path):
            log.debug("scan", "scan: %s. not a video, skipped", path)
            return _CONTINUE

        if not self.cache.is_complete(path):
            log.debug("scan", "scan: %s. missing, queued", path)
            self.cache.remove_video(path)
            self.cache.set_mod_time(path, mtime)
            result.dirty.append(path)
            return _CONTINUE

        if mtime == self.cache.mod_time(path):
            result.unchanged += 1
            log.debug("scan", "scan: %s. unchanged, skipped", path)
            return _CONTINUE

        log.debug("scan", "scan: %s. modified, queued", path)
        self.cache.remove_video(path)
        self.cache.set_mod_time(path, mtime)
        result.dirty.append(path)
        return _CONTINUE


def scan(roots: Iterable[str | Path], cache: CacheStore, cancel: Optional[Cancellation] = None) -> ScanResult:
    return Scanner(cache, cancel).scan(roots)
