import os
import stat
import threading
from datetime import datetime, timezone

import numpy as np
import pytest
from PIL import Image

from longexpo.errors import OutputWriteError
from longexpo.reducer import CompositeImage
from longexpo.writer import default_output_dir, timestamped_path, write_composite

NOW = datetime(2024, 5, 17, 13, 4, 9, tzinfo=timezone.utc)


def _image(h=3, w=4):
    rng = np.random.default_rng(0)
    px = rng.integers(0, 256, size=(h, w, 4), dtype=np.uint8)
    return CompositeImage(width=w, height=h, pixels=px)


def test_timestamped_path_format(tmp_path):
    p = timestamped_path(tmp_path, now=NOW)
    assert p == tmp_path / "long_exposure_image_20240517130409.png"


def test_timestamped_path_never_reuses_a_name(tmp_path):
    first = timestamped_path(tmp_path, now=NOW)
    first.write_bytes(b"x")
    second = timestamped_path(tmp_path, now=NOW)
    assert second.name == "long_exposure_image_20240517130409_1.png"


def test_default_output_dir_is_parent(tmp_path):
    frames = tmp_path / "proj" / "frames"
    assert default_output_dir(frames) == (tmp_path / "proj").resolve()


def test_write_composite_is_lossless(tmp_path):
    img = _image()
    out = write_composite(img, tmp_path / "out" / "composite.png")
    assert out.exists()
    with Image.open(out) as back:
        assert back.mode == "RGBA"
        arr = np.asarray(back)
    assert np.array_equal(arr, img.pixels)
    # No temporary files left behind
    assert [p.name for p in out.parent.iterdir()] == ["composite.png"]


def test_write_failure_leaves_no_file(tmp_path, monkeypatch):
    def failing_save(self, fp, format=None, **params):
        fp.write(b"\x89PNG partial")
        raise OSError("disk full")

    monkeypatch.setattr(Image.Image, "save", failing_save)
    target = tmp_path / "composite.png"
    with pytest.raises(OutputWriteError):
        write_composite(_image(), target)
    assert list(tmp_path.iterdir()) == []


def test_written_file_follows_umask(tmp_path):
    old = os.umask(0o022)
    try:
        out = write_composite(_image(), tmp_path / "composite.png")
    finally:
        os.umask(old)
    assert stat.S_IMODE(out.stat().st_mode) == 0o644


def test_existing_file_is_not_overwritten(tmp_path):
    target = tmp_path / "composite.png"
    target.write_bytes(b"earlier")
    out = write_composite(_image(), target)
    assert out.name == "composite_1.png"
    assert target.read_bytes() == b"earlier"


def test_concurrent_writes_in_same_second_keep_every_image(tmp_path):
    n = 8
    barrier = threading.Barrier(n)
    written = []
    errors = []

    def worker(seed):
        px = np.full((2, 2, 4), seed, dtype=np.uint8)
        img = CompositeImage(width=2, height=2, pixels=px)
        try:
            barrier.wait()
            path = timestamped_path(tmp_path, now=NOW)
            written.append(write_composite(img, path))
        except Exception as e:  # surfaced by the assert below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i + 1,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(set(written)) == n
    files = sorted(tmp_path.glob("long_exposure_image_20240517130409*.png"))
    assert len(files) == n
    assert not list(tmp_path.glob("*.tmp"))
    seeds = set()
    for f in files:
        with Image.open(f) as back:
            seeds.add(int(np.asarray(back)[0, 0, 0]))
    assert seeds == set(range(1, n + 1))
