import json

import pytest

from indexer.cache import CacheStore
from indexer.errors import CacheError
from indexer.models import PreviewArtifact, ThumbnailSprite, VideoRecord

from .helpers import write_frames, write_video


def _record(video, artifacts_dir) -> VideoRecord:
    frames = write_frames(artifacts_dir, 2)
    return VideoRecord(
        name=video.stem,
        path=str(video),
        duration=12.5,
        width=1280,
        height=720,
        preview=PreviewArtifact(
            cover=frames[0],
            thumbs=ThumbnailSprite(path=frames[1], width=1600, height=900, thumb_width=160, thumb_height=90, count=3),
        ),
    )


def test_write_skips_empty_store(tmp_path):
    out = tmp_path / "cache.json"
    assert CacheStore().write(out) is False
    assert not out.exists()


def test_write_then_read_restores_entries(tmp_path):
    video = write_video(tmp_path, "a.mp4")
    cache = CacheStore()
    cache.set_mod_time(str(video), 123456789)
    cache.add_video(_record(video, tmp_path / "art"))
    out = tmp_path / "nested" / "cache.json"
    assert cache.write(out) is True

    raw = json.loads(out.read_text())
    assert set(raw) == {"mod", "videos"}
    assert raw["videos"][str(video)]["preview"]["thumbs"]["thumbWidth"] == 160

    loaded = CacheStore()
    loaded.read(out)
    assert loaded.mod_time(str(video)) == 123456789
    rec = loaded.get(str(video))
    assert rec is not None and rec.duration == 12.5
    assert rec.preview.thumbs.count == 3
    assert loaded.is_complete(str(video))


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"mod": {"a": "soon"}}'])
def test_read_rejects_corrupt_file(tmp_path, content):
    out = tmp_path / "cache.json"
    out.write_text(content)
    cache = CacheStore()
    cache.set_mod_time("/keep", 1)
    with pytest.raises(CacheError):
        cache.read(out)
    # a failed read leaves the previous state alone
    assert cache.mod_time("/keep") == 1


def test_read_missing_file_raises(tmp_path):
    with pytest.raises(CacheError):
        CacheStore().read(tmp_path / "nope.json")


def test_prune_missing_drops_timestamp_and_record(tmp_path):
    kept = write_video(tmp_path, "kept.mp4")
    gone = write_video(tmp_path, "gone.mp4")
    cache = CacheStore()
    for v in (kept, gone):
        cache.set_mod_time(str(v), 1)
        cache.add_video(_record(v, tmp_path / f"art-{v.stem}"))
    cache.set_mod_time(str(tmp_path / "never-generated.mp4"), 1)
    gone.unlink()

    removed = cache.prune_missing()
    assert removed == sorted([str(gone), str(tmp_path / "never-generated.mp4")])
    assert cache.get(str(gone)) is None and cache.mod_time(str(gone)) is None
    assert cache.get(str(kept)) is not None


def test_completeness_rechecks_artifacts_on_disk(tmp_path):
    video = write_video(tmp_path, "a.mp4")
    cache = CacheStore()
    rec = _record(video, tmp_path / "art")
    cache.add_video(rec)
    assert cache.is_complete(str(video))

    # sprite removed behind the cache's back
    (tmp_path / "art" / "thum002.jpg").unlink()
    assert not cache.is_complete(str(video))


def test_completeness_requires_preview(tmp_path):
    video = write_video(tmp_path, "a.mp4")
    cache = CacheStore()
    assert not cache.is_complete(str(video))
    cache.add_video(VideoRecord(name="a", path=str(video)))
    assert not cache.is_complete(str(video))
    cache.add_video(VideoRecord(name="a", path=str(video), preview=PreviewArtifact(cover=str(video))))
    assert not cache.is_complete(str(video))
