import pytest
from PIL import Image, ImageDraw

RED = (255, 0, 0)
BLUE = (0, 0, 255)
GREEN = (0, 255, 0)


def _two_tone(size, first, second):
    """Top half first color, bottom half second (left/right when wider than tall)."""
    width, height = size
    img = Image.new("RGB", size, first)
    draw = ImageDraw.Draw(img)
    if height >= width:
        draw.rectangle([0, height // 2, width, height], fill=second)
    else:
        draw.rectangle([width // 2, 0, width, height], fill=second)
    return img


@pytest.fixture
def portrait(tmp_path):
    path = tmp_path / "portrait.jpg"
    _two_tone((600, 800), RED, BLUE).save(path, quality=95)
    return path


@pytest.fixture
def landscape(tmp_path):
    path = tmp_path / "landscape.jpg"
    _two_tone((800, 600), RED, BLUE).save(path, quality=95)
    return path


@pytest.fixture
def alpha_png(tmp_path):
    path = tmp_path / "alpha.png"
    img = Image.new("RGBA", (200, 100), (255, 0, 0, 0))
    ImageDraw.Draw(img).rectangle([50, 25, 150, 75], fill=(0, 0, 255, 255))
    img.save(path)
    return path


@pytest.fixture
def corrupted(tmp_path, portrait):
    data = portrait.read_bytes()
    path = tmp_path / "corrupted.jpg"
    path.write_bytes(data[: len(data) // 2])
    return path


@pytest.fixture
def not_an_image(tmp_path):
    path = tmp_path / "notes.jpg"
    path.write_text("this is not an image")
    return path


@pytest.fixture
def rotated(tmp_path):
    """600x800 pixels stored with EXIF orientation 6 (displayed as 800x600)."""
    path = tmp_path / "rotated.jpg"
    img = _two_tone((600, 800), RED, BLUE)
    exif = Image.Exif()
    exif[0x0112] = 6
    img.save(path, exif=exif, quality=95)
    return path


@pytest.fixture
def animated(tmp_path):
    """Three 100x100 frames: red, green, blue."""
    path = tmp_path / "frames.gif"
    frames = [Image.new("RGB", (100, 100), color) for color in (RED, GREEN, BLUE)]
    frames[0].save(path, save_all=True, append_images=frames[1:], duration=100)
    return path
