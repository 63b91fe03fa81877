"""Records persisted in the cache file and served by the HTTP layer."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ThumbnailSprite(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str
    width: int
    height: int
    thumb_width: int = Field(alias="thumbWidth")
    thumb_height: int = Field(alias="thumbHeight")
    count: int


class PreviewArtifact(BaseModel):
    cover: str
    thumbs: Optional[ThumbnailSprite] = None


class VideoRecord(BaseModel):
    name: str
    path: str
    # seconds, millisecond precision
    duration: float = 0.0
    width: int = 0
    height: int = 0
    preview: Optional[PreviewArtifact] = None

    def dump(self) -> dict:
        return self.model_dump(by_alias=True)


def file_name(path: str | Path) -> str:
    """Base name without its extension."""
    p = Path(path)
    return p.stem if p.suffix else p.name


@dataclass
class ProgressSnapshot:
    duration: float
    out_time: float = 0.0
    speed: float = 0.0

    def remaining(self) -> Optional[float]:
        """Estimated seconds left at the current speed, None when speed is unknown."""
        if self.speed <= 0:
            return None
        return max(0.0, (self.duration - self.out_time) / self.speed)
