import io

import pytest

from imageproc_shared.errors import InvalidSource
from imageproc_shared.files import (
    copy_to_tempfile,
    is_in_dir,
    normalize_format,
    output_path,
    prepare_source,
    resolve_source,
    tmp_destination,
)


@pytest.mark.parametrize("value,expected", [
    ("JPEG", "jpg"),
    (".jpeg", "jpg"),
    ("jpg", "jpg"),
    ("PNG", "png"),
    ("tif", "tiff"),
])
def test_normalize_format(value, expected):
    assert normalize_format(value) == expected


def test_normalize_format_empty():
    with pytest.raises(ValueError):
        normalize_format(".")


def test_is_in_dir(tmp_path):
    assert is_in_dir(tmp_path, tmp_path / "a" / "b.png")
    assert not is_in_dir(tmp_path / "a", tmp_path / "b.png")


def test_tmp_destination_has_suffix():
    path = tmp_destination(".webp")
    try:
        assert path.suffix == ".webp"
        assert path.exists()
    finally:
        path.unlink()


def test_resolve_source_path(portrait):
    assert resolve_source(portrait) == portrait
    assert resolve_source(str(portrait)) == portrait


def test_resolve_source_missing_file(tmp_path):
    with pytest.raises(InvalidSource):
        resolve_source(tmp_path / "missing.jpg")


def test_resolve_source_open_file_uses_its_path(portrait):
    with open(portrait, "rb") as f:
        assert resolve_source(f) == portrait


def test_resolve_source_bytes_stream(portrait):
    data = portrait.read_bytes()
    stream = io.BytesIO(data)
    path = resolve_source(stream)
    try:
        assert path.read_bytes() == data
        assert stream.tell() == 0
    finally:
        path.unlink()


@pytest.mark.parametrize("source", [None, 42, io.StringIO("text"), io.BytesIO(b"")])
def test_resolve_source_invalid(source):
    with pytest.raises(InvalidSource):
        resolve_source(source)


def test_copy_to_tempfile_keeps_suffix():
    path = copy_to_tempfile(io.BytesIO(b"data"), ".png")
    try:
        assert path.suffix == ".png"
        assert path.read_bytes() == b"data"
    finally:
        path.unlink()


def test_output_path(tmp_path, portrait):
    out_dir = tmp_path / "out"
    assert output_path(out_dir, portrait) == out_dir / "portrait.jpg"
    assert output_path(out_dir, portrait, "PNG") == out_dir / "portrait.png"
    assert out_dir.is_dir()


def test_output_path_sanitizes_name(tmp_path):
    out = output_path(tmp_path, tmp_path / "../my photo.jpg", "webp")
    assert out == tmp_path / "my_photo.webp"


def test_output_path_non_ascii_name_keeps_suffix(tmp_path):
    assert output_path(tmp_path, tmp_path / "фото.jpg") == tmp_path / "image.jpg"
    assert output_path(tmp_path, tmp_path / "фото.jpg", "png") == tmp_path / "image.png"
    assert output_path(tmp_path, tmp_path / "café.jpg") == tmp_path / "cafe.jpg"


def test_resolve_source_rejects_text_mode_file(portrait):
    with open(portrait, "r") as fh:
        with pytest.raises(InvalidSource):
            resolve_source(fh)


def test_prepare_source_reports_copies(portrait):
    assert prepare_source(portrait) == (portrait, False)
    with open(portrait, "rb") as fh:
        assert prepare_source(fh) == (portrait, False)

    path, copied = prepare_source(io.BytesIO(portrait.read_bytes()))
    try:
        assert copied
        assert path != portrait
    finally:
        path.unlink()
