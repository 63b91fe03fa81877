"""
Sprite sheet ("contact sheet") composition with Pillow.
"""
from __future__ import annotations

import shutil
from pathlib import Path
from typing import Sequence, Tuple

from PIL import Image

from . import log
from .errors import SpriteError
from .models import ThumbnailSprite


def aspect_fit(width: int, height: int, tw: int, th: int) -> Tuple[int, int]:
    """
    Fit a width x height source into a tw x th box, preserving aspect ratio.

    Proportionally wider sources fit the box width, taller ones the box
    height; an identical ratio returns the box itself. Degenerate source
    sizes also return the box.
    """
    if width <= 0 or height <= 0 or tw <= 0 or th <= 0:
        return tw, th
    # width/height > tw/th, compared without division
    if width * th > tw * height:
        return tw, max(1, tw * height // width)
    if height * tw > th * width:
        return max(1, th * width // height), th
    return tw, th


def _draw_thumb(canvas: Image.Image, box: Tuple[int, int, int, int], thumb: str | Path) -> None:
    x0, y0, cell_w, cell_h = box
    with Image.open(thumb) as im:
        fit_w, fit_h = aspect_fit(im.width, im.height, cell_w, cell_h)
        dx = dy = 0
        if cell_h > fit_h:
            dy = (cell_h - fit_h) // 2
        elif cell_w > fit_w:
            dx = (cell_w - fit_w) // 2
        scaled = im.convert("RGB").resize((fit_w, fit_h), Image.Resampling.NEAREST)
    canvas.paste(scaled, (x0 + dx, y0 + dy))


def compose_sprite(thumbs: Sequence[str | Path], out: str | Path, width: int, height: int, rows: int, cols: int, *, quality: int = 80) -> ThumbnailSprite:
    """
    Draw up to rows*cols thumbs into a width x height JPEG, row by row.

    Extra thumbs are ignored; missing ones leave their cells black.
    """
    if rows <= 0 or cols <= 0:
        raise SpriteError(f"invalid sprite grid {rows}x{cols}")
    count = min(rows * cols, len(thumbs))
    thumb_w = width // cols
    thumb_h = height // rows

    canvas = Image.new("RGB", (width, height))
    for i in range(count):
        row, col = divmod(i, cols)
        try:
            _draw_thumb(canvas, (col * thumb_w, row * thumb_h, thumb_w, thumb_h), thumbs[i])
        except (OSError, ValueError) as e:
            raise SpriteError(f"failed to draw thumbnail {thumbs[i]}: {e}") from e

    out_path = Path(out)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        canvas.save(out_path, format="JPEG", quality=int(quality))
    except (OSError, ValueError) as e:
        raise SpriteError(f"failed to write sprite {out_path}: {e}") from e
    log.debug("sprite", "sprite %s: %dx%d grid=%dx%d frames=%d", out_path, width, height, rows, cols, count)

    return ThumbnailSprite(
        path=str(out_path),
        width=width,
        height=height,
        thumb_width=thumb_w,
        thumb_height=thumb_h,
        count=count,
    )


def copy_cover(thumbs: Sequence[str | Path], out: str | Path) -> Path:
    """Copy the middle thumb verbatim as the cover image."""
    if not thumbs:
        raise SpriteError("no thumbnails to pick a cover from")
    out_path = Path(out)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(thumbs[len(thumbs) // 2], out_path)
    except OSError as e:
        raise SpriteError(f"failed to write cover {out_path}: {e}") from e
    return out_path
