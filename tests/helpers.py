import time
from pathlib import Path

from PIL import Image

# ftyp box with an mp4 brand, enough for content sniffing
MP4_HEADER = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"


def write_video(root: Path, name: str) -> Path:
    p = root / name
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(MP4_HEADER + b"\x00" * 64)
    return p


def write_frames(d: Path, count: int, size=(160, 90), color=(200, 30, 30)) -> list:
    d.mkdir(parents=True, exist_ok=True)
    out = []
    for i in range(count):
        p = d / f"thum{i + 1:03d}.jpg"
        Image.new("RGB", size, color).save(p, "JPEG")
        out.append(str(p))
    return out


def _wait_for(predicate, *, timeout: float = 3.0, interval: float = 0.01) -> bool:
    deadline = time.perf_counter() + timeout
    while time.perf_counter() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return False
