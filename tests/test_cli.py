import json

import numpy as np
from PIL import Image

from longexpo.scripts import compose_cli
from longexpo.selection import frame_filename


def _frames(d, n=3):
    d.mkdir(parents=True)
    for i in range(1, n + 1):
        arr = np.full((4, 6, 4), 40 * i, dtype=np.uint8)
        Image.fromarray(arr).save(d / frame_filename(i))


def test_compose_cli_indices(tmp_path, capsys):
    frames_dir = tmp_path / "proj" / "frames"
    _frames(frames_dir)
    code = compose_cli.main(
        ["--frames-dir", str(frames_dir), "--indices", "1", "3", "--workers", "1"]
    )
    assert code == 0
    out = capsys.readouterr().out
    assert "Image written:" in out
    assert len(list((tmp_path / "proj").glob("long_exposure_image_*.png"))) == 1


def test_compose_cli_payload(tmp_path):
    frames_dir = tmp_path / "proj" / "frames"
    _frames(frames_dir)
    payload = tmp_path / "sel.json"
    payload.write_text(
        json.dumps({"frames": [{"frame_number": 2, "frame_weight": 1.5}]})
    )
    code = compose_cli.main(
        [
            "--frames-dir", str(frames_dir),
            "--payload", str(payload),
            "--mode", "weighted_brightness",
        ]
    )
    assert code == 0


def test_compose_cli_reports_failure(tmp_path):
    frames_dir = tmp_path / "proj" / "frames"
    _frames(frames_dir)
    code = compose_cli.main(["--frames-dir", str(frames_dir), "--indices", "9"])
    assert code == 1
