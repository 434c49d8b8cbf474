import pytest
from click.testing import CliRunner
from PIL import Image

from imageproc_cli.cli import cli


@pytest.fixture
def runner(monkeypatch, tmp_path):
    monkeypatch.setenv("IMAGEPROC_OUTPUT_DIR", str(tmp_path / "cli-out"))
    monkeypatch.delenv("IMAGEPROC_ENGINE", raising=False)
    monkeypatch.delenv("IMAGEPROC_GRAVITY", raising=False)
    return CliRunner()


def test_process_limit(runner, portrait, tmp_path):
    out = tmp_path / "small.jpg"
    result = runner.invoke(cli, ["process", str(portrait), "--limit", "400x400", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert f"{out} 300x400 jpg" in result.output
    with Image.open(out) as img:
        assert img.size == (300, 400)


def test_process_default_output_dir(runner, portrait, tmp_path):
    result = runner.invoke(cli, ["process", str(portrait), "--fit", "x100", "--format", "png"])
    assert result.exit_code == 0, result.output
    out = tmp_path / "cli-out" / "portrait.png"
    assert out.exists()
    assert "75x100 png" in result.output


def test_process_pad_with_background(runner, portrait, tmp_path):
    out = tmp_path / "padded.png"
    result = runner.invoke(cli, ["process", str(portrait), "--pad", "400x400",
                                 "--background", "red", "--gravity", "west", "-o", str(out)])
    assert result.exit_code == 0, result.output
    with Image.open(out) as img:
        assert img.size == (400, 400)
        assert img.convert("RGBA").getpixel((390, 10)) == (255, 0, 0, 255)


def test_process_fill_then_crop(runner, portrait, tmp_path):
    out = tmp_path / "cropped.jpg"
    result = runner.invoke(cli, ["process", str(portrait), "--fill", "400x400",
                                 "--crop", "100x50", "-o", str(out)])
    assert result.exit_code == 0, result.output
    assert "100x50" in result.output


def test_process_rejects_two_resize_modes(runner, portrait):
    result = runner.invoke(cli, ["process", str(portrait), "--limit", "10x10", "--fit", "10x10"])
    assert result.exit_code == 2


@pytest.mark.parametrize("args", [
    ["--fill", "0x10"],
    ["--fill", "10x10", "--gravity", "up"],
    ["--crop", "banana"],
])
def test_process_invalid_options(runner, portrait, tmp_path, args):
    result = runner.invoke(cli, ["process", str(portrait), *args, "-o", str(tmp_path / "x.jpg")])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_process_corrupted_image(runner, corrupted, tmp_path):
    result = runner.invoke(cli, ["process", str(corrupted), "--limit", "10x10",
                                 "-o", str(tmp_path / "x.jpg")])
    assert result.exit_code == 1
    assert "pillow failed" in result.output


def test_process_bad_engine_config(runner, portrait, monkeypatch):
    monkeypatch.setenv("IMAGEPROC_ENGINE", "vips")
    result = runner.invoke(cli, ["process", str(portrait)])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_valid(runner, portrait, corrupted):
    result = runner.invoke(cli, ["valid", str(portrait)])
    assert result.exit_code == 0
    assert f"ok {portrait}" in result.output

    result = runner.invoke(cli, ["valid", str(portrait), str(corrupted)])
    assert result.exit_code == 1
    assert f"invalid {corrupted}" in result.output


def test_compare(runner, portrait, landscape):
    result = runner.invoke(cli, ["compare", str(portrait), str(portrait)])
    assert result.exit_code == 0
    assert "0.00 similar" in result.output

    result = runner.invoke(cli, ["compare", str(portrait), str(landscape)])
    assert result.exit_code == 1
    assert "different" in result.output
