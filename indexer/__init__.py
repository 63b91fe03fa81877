"""Incremental video indexer: scan, cache and preview generation."""
from __future__ import annotations

from .cache import CacheStore
from .cancel import Cancellation
from .config import PreviewConfig, Settings
from .models import PreviewArtifact, ProgressSnapshot, ThumbnailSprite, VideoRecord
from .pipeline import GenerationReport, Indexer
from .relay import ProgressRelay, ProgressSource
from .scanner import ScanResult, Scanner, scan
from .sprite import aspect_fit, compose_sprite
from .store import VideoStore

__all__ = [
    "CacheStore",
    "Cancellation",
    "PreviewConfig",
    "Settings",
    "PreviewArtifact",
    "ProgressSnapshot",
    "ThumbnailSprite",
    "VideoRecord",
    "GenerationReport",
    "Indexer",
    "ProgressRelay",
    "ProgressSource",
    "ScanResult",
    "Scanner",
    "scan",
    "aspect_fit",
    "compose_sprite",
    "VideoStore",
]
