"""
Content-type detection from a file's leading bytes via libmagic.

File names and extensions are never consulted: a video is anything libmagic
reports with a ``video/*`` MIME type.
"""
from __future__ import annotations

from pathlib import Path

import magic

SNIFF_LEN = 512
OCTET_STREAM = "application/octet-stream"


def sniff_content_type(data: bytes) -> str:
    head = data[:SNIFF_LEN]
    if not head:
        return OCTET_STREAM
    return magic.from_buffer(head, mime=True) or OCTET_STREAM


def mime(path: str | Path) -> str:
    with open(path, "rb") as f:
        return sniff_content_type(f.read(SNIFF_LEN))


def is_video(path: str | Path) -> bool:
    """Sniff the first bytes; unreadable files are not videos."""
    try:
        return "video" in mime(path)
    except (OSError, magic.MagicException):
        return False
