import numpy as np
import pytest
from PIL import Image

from longexpo import EngineConfig, LongExposureEngine
from longexpo.errors import DecodeError, NotFound
from longexpo.loader import load_frame, load_frames
from longexpo.selection import FrameRef, FrameWeight, frame_filename


def _ref(path, index=1):
    return FrameRef(index=index, path=path)


def test_rgb_frame_gets_opaque_alpha(tmp_path):
    rgb = np.random.default_rng(1).integers(0, 256, size=(5, 7, 3), dtype=np.uint8)
    path = tmp_path / frame_filename(1)
    Image.fromarray(rgb).save(path)

    frame = load_frame(_ref(path))
    assert frame.pixels.shape == (5, 7, 4)
    assert frame.pixels.dtype == np.uint8
    assert np.array_equal(frame.pixels[..., :3], rgb)
    assert np.all(frame.pixels[..., 3] == 255)
    assert not frame.pixels.flags.writeable


def test_grayscale_frame_is_replicated_to_rgb(tmp_path):
    gray = np.arange(12, dtype=np.uint8).reshape(3, 4) * 20
    path = tmp_path / frame_filename(1)
    Image.fromarray(gray).save(path)

    px = load_frame(_ref(path)).pixels
    assert px.shape == (3, 4, 4)
    for c in range(3):
        assert np.array_equal(px[..., c], gray)
    assert np.all(px[..., 3] == 255)


def test_palette_transparency_becomes_alpha(tmp_path):
    img = Image.new("P", (4, 2))
    palette = [0, 0, 0, 200, 50, 10, 20, 220, 90] + [0] * (256 * 3 - 9)
    img.putpalette(palette)
    img.putdata([0, 1, 2, 0, 1, 1, 2, 0])
    path = tmp_path / frame_filename(1)
    img.save(path, transparency=0)

    px = load_frame(_ref(path)).pixels
    assert px.shape == (2, 4, 4)
    idx = np.array([[0, 1, 2, 0], [1, 1, 2, 0]])
    assert np.all(px[idx == 0][:, 3] == 0)
    assert np.all(px[idx != 0][:, 3] == 255)
    assert tuple(px[0, 1, :3]) == (200, 50, 10)
    assert tuple(px[0, 2, :3]) == (20, 220, 90)


def test_single_rgb_frame_weighted_is_identity(tmp_path):
    rgb = np.random.default_rng(2).integers(1, 256, size=(6, 5, 3), dtype=np.uint8)
    frames_dir = tmp_path / "proj" / "frames"
    frames_dir.mkdir(parents=True)
    Image.fromarray(rgb).save(frames_dir / frame_filename(1))

    cfg = EngineConfig(num_workers=1, block_rows=2, media_root=tmp_path)
    result = LongExposureEngine(cfg).compose(
        frames_dir, [FrameWeight(1, 1.0)], "weighted_brightness"
    )
    with Image.open(result.path) as back:
        out = np.asarray(back)
    assert out.shape == (6, 5, 4)
    assert np.array_equal(out[..., :3], rgb)
    assert np.all(out[..., 3] == 255)


def test_load_frames_keeps_selection_order(tmp_path):
    refs = []
    for i in (3, 1, 2):
        path = tmp_path / frame_filename(i)
        Image.fromarray(np.full((2, 2, 4), i, dtype=np.uint8)).save(path)
        refs.append((_ref(path, i), float(i)))

    frames = load_frames(refs, workers=3)
    assert [f.ref.index for f in frames] == [3, 1, 2]
    assert [f.weight for f in frames] == [3.0, 1.0, 2.0]


def test_load_frames_fails_on_first_bad_frame(tmp_path):
    good = tmp_path / frame_filename(1)
    Image.fromarray(np.zeros((2, 2, 4), dtype=np.uint8)).save(good)
    broken = tmp_path / frame_filename(2)
    broken.write_bytes(b"not a png")
    missing = tmp_path / frame_filename(3)

    pairs = [(_ref(good, 1), 1.0), (_ref(broken, 2), 1.0), (_ref(missing, 3), 1.0)]
    with pytest.raises(DecodeError):
        load_frames(pairs, workers=2)
    with pytest.raises(NotFound):
        load_frames(pairs[2:], workers=1)

    kept = load_frames(pairs, workers=2, best_effort=True)
    assert [f.ref.index for f in kept] == [1]
