import importlib.util
import json
import signal
from pathlib import Path

import pytest

from .helpers import write_video

_SCAN = Path(__file__).resolve().parents[1] / "tools" / "scan.py"


@pytest.fixture()
def cli(monkeypatch):
    spec = importlib.util.spec_from_file_location("vidindex_scan_cli", _SCAN)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    # keep pytest's own SIGINT handling
    monkeypatch.setattr(signal, "signal", lambda *a, **k: None)
    return mod


def test_cli_requires_existing_root(cli, tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("MEDIA_ROOT", raising=False)
    assert cli.main([]) == 2
    assert cli.main(["--root", str(tmp_path / "missing")]) == 2
    assert "Root not found" in capsys.readouterr().err


def test_cli_indexes_tree(cli, tmp_path, media_root, fake_tools, capsys):
    ffprobe, ffmpeg = fake_tools
    v = write_video(media_root, "clip.mp4")
    cache_dir = tmp_path / "cache"

    rc = cli.main(["--root", str(media_root), "--cache-dir", str(cache_dir), "--ffprobe", ffprobe, "--ffmpeg", ffmpeg])

    assert rc == 0
    assert "generated=1 failed=0" in capsys.readouterr().out
    saved = json.loads((cache_dir / "cache.json").read_text())
    assert str(v.resolve()) in saved["videos"]


def test_cli_reports_total_failure(cli, tmp_path, media_root, fake_tools, monkeypatch):
    monkeypatch.setenv("FAKE_FFPROBE_FAIL", "1")
    ffprobe, ffmpeg = fake_tools
    write_video(media_root, "clip.mp4")
    rc = cli.main(["--root", str(media_root), "--cache-dir", str(tmp_path / "cache"), "--ffprobe", ffprobe, "--ffmpeg", ffmpeg])
    assert rc == 1
