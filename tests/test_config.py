from pathlib import Path

import pytest

from longexpo.config import EngineConfig, config_as_dict, load_config


def test_defaults():
    cfg = EngineConfig()
    assert cfg.frames_root == Path("media/outputs")
    assert cfg.output_root is None
    assert cfg.blend_mode == "max_light"
    assert cfg.best_effort is False


def test_load_engine_section(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text(
        "engine:\n"
        "  frames_root: /data/out\n"
        "  public_base_url: https://img.example\n"
        "  blend_mode: weighted_brightness\n"
        "  num_workers: auto\n"
        "  frame_ext: .jpg\n"
        "  best_effort: true\n"
        "  unrelated: 1\n"
    )
    cfg = load_config(p)
    assert cfg.frames_root == Path("/data/out")
    assert cfg.public_base_url == "https://img.example"
    assert cfg.blend_mode == "weighted_brightness"
    assert cfg.num_workers is None
    assert cfg.frame_ext == "jpg"
    assert cfg.best_effort is True


def test_load_flat_mapping(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("num_workers: 3\noutput_root: renders\n")
    cfg = load_config(p)
    assert cfg.num_workers == 3
    assert cfg.output_root == Path("renders")


@pytest.mark.parametrize("body", ["blend_mode: lighten\n", "block_rows: 0\n"])
def test_invalid_values(tmp_path, body):
    p = tmp_path / "cfg.yaml"
    p.write_text(body)
    with pytest.raises(ValueError):
        load_config(p)


def test_config_as_dict_is_json_friendly():
    d = config_as_dict(EngineConfig())
    assert d["frames_root"] == "media/outputs"
    assert d["output_root"] is None
