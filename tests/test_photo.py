"""
Tests for photo validation and decoding
"""
import io

import pytest
from PIL import Image

from id_card_studio.config import StudioConfig
from id_card_studio.errors import PhotoInputError
from id_card_studio.photo import decode_photo, load_photo, load_photo_url

from conftest import FakeResponse, encode, gradient, solid


@pytest.mark.parametrize("fmt", ["PNG", "JPEG"])
def test_accepts_png_and_jpeg(config, fmt):
    photo = decode_photo(encode(gradient((64, 48)), fmt), config=config)
    assert photo.format == fmt
    assert photo.image.size == (64, 48)
    assert photo.image.mode == "RGB"


def test_rejects_other_formats(config):
    with pytest.raises(PhotoInputError, match="Unsupported image type GIF"):
        decode_photo(encode(solid((10, 10)), "GIF"), config=config)


def test_rejects_garbage(config):
    with pytest.raises(PhotoInputError, match="Could not read"):
        decode_photo(b"definitely not a picture", config=config)


def test_rejects_empty(config):
    with pytest.raises(PhotoInputError):
        decode_photo(b"", config=config)


def test_rejects_oversize():
    data = encode(gradient((64, 48)))
    config = StudioConfig(max_photo_bytes=len(data) - 1)
    with pytest.raises(PhotoInputError, match="File too large"):
        decode_photo(data, config=config)
    assert decode_photo(data, config=config, check_size=False).image.size == (64, 48)


def test_palette_png_is_normalised(config):
    img = solid((10, 10)).convert("P")
    assert decode_photo(encode(img), config=config).image.mode == "RGB"


def test_exif_orientation_is_applied(config):
    img = gradient((40, 20))
    exif = Image.Exif()
    exif[0x0112] = 6  # rotate 90 CW on display
    buf = io.BytesIO()
    img.save(buf, format="JPEG", exif=exif)
    assert decode_photo(buf.getvalue(), config=config).image.size == (20, 40)


def test_load_photo_from_disk(tmp_path, config):
    path = tmp_path / "me.png"
    path.write_bytes(encode(gradient((30, 30))))
    photo = load_photo(str(path), config)
    assert photo.name == "me.png"
    with pytest.raises(PhotoInputError):
        load_photo(str(tmp_path / "missing.png"), config)


def test_load_photo_url(config, fake_session):
    url = "https://photos.example.com/store/e042.jpg"
    fake_session.routes[("GET", url)] = FakeResponse(200, encode(gradient((30, 20)), "JPEG"))
    photo = load_photo_url(url, session=fake_session, config=config)
    assert photo.name == "e042.jpg"
    assert photo.image.size == (30, 20)

    fake_session.routes[("GET", url)] = FakeResponse(404)
    with pytest.raises(PhotoInputError, match="Could not download"):
        load_photo_url(url, session=fake_session, config=config)
