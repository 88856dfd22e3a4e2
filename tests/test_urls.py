from longexpo.urls import to_public_url


def test_path_under_media_root(tmp_path):
    media = tmp_path / "media"
    p = media / "outputs" / "abc" / "long_exposure_image_1.png"
    url = to_public_url(p, media, "http://localhost:8080/")
    assert url == "http://localhost:8080/outputs/abc/long_exposure_image_1.png"


def test_falls_back_to_media_segment(tmp_path):
    p = tmp_path / "srv" / "media" / "outputs" / "x.png"
    url = to_public_url(p, tmp_path / "elsewhere", "https://cdn.example")
    assert url == "https://cdn.example/outputs/x.png"


def test_relative_paths_are_resolved(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    url = to_public_url(
        "media/outputs/p/img.png", "media", "http://h"  # type: ignore[arg-type]
    )
    assert url == "http://h/outputs/p/img.png"
