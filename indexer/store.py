from __future__ import annotations

import threading
from typing import Iterable, List

from .models import VideoRecord


class VideoStore:
    """
    Published list of records read by the HTTP layer.

    Writers swap or append under a lock; readers get a copy, so a reader
    never observes a half-updated list.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._videos: List[VideoRecord] = []

    def videos(self) -> List[VideoRecord]:
        with self._lock:
            return list(self._videos)

    def replace(self, videos: Iterable[VideoRecord]) -> None:
        fresh = list(videos)
        with self._lock:
            self._videos = fresh

    def add(self, video: VideoRecord) -> None:
        with self._lock:
            # path is the identity key; a regenerated record replaces the old one
            self._videos = [v for v in self._videos if v.path != video.path]
            self._videos.append(video)

    def __len__(self) -> int:
        with self._lock:
            return len(self._videos)
