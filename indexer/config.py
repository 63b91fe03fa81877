from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


def _env_int(name: str, default: int) -> int:
    try:
        v = os.environ.get(name)
        return int(v) if v is not None and str(v).strip() != "" else int(default)
    except ValueError:
        return int(default)


def _env_float(name: str, default: float) -> float:
    try:
        v = os.environ.get(name)
        return float(v) if v is not None and str(v).strip() != "" else float(default)
    except ValueError:
        return float(default)


@dataclass(frozen=True)
class PreviewConfig:
    """
    Sizing and sampling knobs for one preview.

    spf/max_frames drive the sampling rate, width/height is the sprite sheet,
    box_w/box_h is the bounding box frames are extracted at, cell_w/cell_h
    decide the grid (rows = height // cell_h, cols = width // cell_w).
    """

    spf: int = 5
    max_frames: int = 100
    width: int = 1600
    height: int = 900
    box_w: int = 412
    box_h: int = 232
    cell_w: int = 160
    cell_h: int = 90
    quality: int = 80

    @property
    def rows(self) -> int:
        return max(1, self.height // self.cell_h)

    @property
    def cols(self) -> int:
        return max(1, self.width // self.cell_w)


def preview_defaults() -> PreviewConfig:
    return PreviewConfig(
        spf=max(1, _env_int("PREVIEW_SPF", 5)),
        max_frames=max(1, _env_int("PREVIEW_MAX_FRAMES", 100)),
    )


def _env_roots() -> List[Path]:
    raw = os.environ.get("MEDIA_ROOT") or ""
    out: List[Path] = []
    for part in raw.split(os.pathsep):
        s = part.strip()
        if s:
            out.append(Path(s).expanduser().resolve())
    return out


@dataclass
class Settings:
    roots: List[Path] = field(default_factory=list)
    cache_dir: Path = Path(".vidindex")
    ffprobe: str = "ffprobe"
    ffmpeg: str = "ffmpeg"
    host: str = "127.0.0.1"
    port: int = 8080
    shutdown_grace: float = 5.0
    preview: PreviewConfig = field(default_factory=PreviewConfig)

    @property
    def cache_file(self) -> Path:
        return self.cache_dir / "cache.json"

    @classmethod
    def from_env(cls, *, roots: Optional[List[Path]] = None, cache_dir: Optional[Path] = None) -> "Settings":
        cdir = cache_dir or Path(os.environ.get("CACHE_DIR") or ".vidindex")
        return cls(
            roots=list(roots) if roots is not None else _env_roots(),
            cache_dir=Path(cdir).expanduser().resolve(),
            ffprobe=os.environ.get("FFPROBE") or "ffprobe",
            ffmpeg=os.environ.get("FFMPEG") or "ffmpeg",
            host=os.environ.get("HOST", "127.0.0.1"),
            port=_env_int("PORT", 8080),
            shutdown_grace=max(0.0, _env_float("SHUTDOWN_GRACE", 5.0)),
            preview=preview_defaults(),
        )
