"""
Persistent scan cache.

Two parallel maps keyed by absolute path:
  - mod:    last seen modification time (st_mtime_ns)
  - videos: the VideoRecord generated for that path

Backed by a single JSON file ``{"mod": {...}, "videos": {...}}``.
"""
from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from .errors import CacheError
from .models import VideoRecord


def file_exists(path: str | Path) -> bool:
    try:
        os.stat(path)
        return True
    except OSError:
        return False


class CacheStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._mod: Dict[str, int] = {}
        self._videos: Dict[str, VideoRecord] = {}

    # -- timestamps --
    def mod_time(self, path: str) -> Optional[int]:
        with self._lock:
            return self._mod.get(path)

    def set_mod_time(self, path: str, mtime_ns: int) -> None:
        with self._lock:
            self._mod[path] = int(mtime_ns)

    # -- records --
    def get(self, path: str) -> Optional[VideoRecord]:
        with self._lock:
            return self._videos.get(path)

    def add_video(self, video: VideoRecord) -> None:
        with self._lock:
            self._videos[video.path] = video

    def remove_video(self, path: str) -> None:
        with self._lock:
            self._videos.pop(path, None)

    def all_videos(self) -> List[VideoRecord]:
        with self._lock:
            return list(self._videos.values())

    def is_empty(self) -> bool:
        with self._lock:
            return not self._mod and not self._videos

    def clear(self) -> None:
        with self._lock:
            self._mod = {}
            self._videos = {}

    def prune_missing(self) -> List[str]:
        """Drop timestamp and record for every path no longer on disk. Returns removed paths."""
        with self._lock:
            keys = set(self._mod) | set(self._videos)
            gone = sorted(k for k in keys if not file_exists(k))
            for k in gone:
                self._mod.pop(k, None)
                self._videos.pop(k, None)
            return gone

    def is_complete(self, path: str) -> bool:
        """
        True only if a record exists with a preview whose cover and sprite
        files are both on disk right now. Evaluated against the filesystem
        on every call.
        """
        with self._lock:
            v = self._videos.get(path)
        if v is None or v.preview is None or v.preview.thumbs is None:
            return False
        return file_exists(v.preview.cover) and file_exists(v.preview.thumbs.path)

    # -- persistence --
    def to_dict(self) -> dict:
        with self._lock:
            return {
                "mod": dict(self._mod),
                "videos": {k: v.dump() for k, v in self._videos.items()},
            }

    def read(self, path: str | Path) -> None:
        """Replace the in-memory state with the file's content. Raises CacheError on any failure."""
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as e:
            raise CacheError(f"failed to read cache {path}: {e}") from e
        except ValueError as e:
            raise CacheError(f"failed to parse cache {path}: {e}") from e
        if not isinstance(raw, dict):
            raise CacheError(f"failed to parse cache {path}: not an object")
        try:
            mod = {str(k): int(v) for k, v in (raw.get("mod") or {}).items()}
            videos = {str(k): VideoRecord.model_validate(v) for k, v in (raw.get("videos") or {}).items() if v is not None}
        except (TypeError, ValueError, AttributeError, ValidationError) as e:
            raise CacheError(f"failed to parse cache {path}: {e}") from e
        with self._lock:
            self._mod = mod
            self._videos = videos

    def write(self, path: str | Path) -> bool:
        """
        Serialize to ``path`` atomically. Does nothing (returns False) when the
        store holds no entries so an empty run never clobbers a good file.
        """
        if self.is_empty():
            return False
        fp = Path(path)
        data = self.to_dict()
        try:
            fp.parent.mkdir(parents=True, exist_ok=True)
            tmp = fp.with_suffix(fp.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp.replace(fp)
        except (OSError, TypeError, ValueError) as e:
            raise CacheError(f"failed to write cache {path}: {e}") from e
        return True
