"""
Tests for the shared compose algorithm and the preview/export compositors
"""
import math

import cv2
import numpy as np
import pytest
from PIL import Image

from id_card_studio.compositor import ExportCompositor, PreviewCompositor, affine_matrix, compose
from id_card_studio.geometry import TargetFrame
from id_card_studio.transform import TransformState

from conftest import gradient, solid

SOURCE_COLOR = (10, 120, 200)
RED = (255, 0, 0)
BLUE = (0, 0, 255)


def halves(size=(200, 100)):
    """Left half red, right half blue."""
    w, h = size
    img = Image.new("RGB", size, RED)
    img.paste(Image.new("RGB", (w // 2, h), BLUE), (w // 2, 0))
    return img


def test_identity_matrix_when_image_matches_output():
    state = TransformState(image=solid((120, 80)))
    m = affine_matrix(state, (120, 80))
    np.testing.assert_allclose(m, [[1, 0, 0], [0, 1, 0]], atol=1e-9)


def test_no_image_leaves_plain_background():
    out = compose(TransformState(), (64, 48))
    assert out.shape == (48, 64, 3)
    assert (out == 255).all()


@pytest.mark.parametrize("img_size", [(400, 300), (300, 400), (123, 457), (640, 480)])
@pytest.mark.parametrize("out_size", [(230, 276), (255, 306), (100, 50)])
@pytest.mark.parametrize("scale", [1.0, 1.5, 3.0])
def test_cover_leaves_no_background(img_size, out_size, scale):
    state = TransformState(image=solid(img_size, SOURCE_COLOR), scale=scale)
    out = compose(state, out_size)
    assert out.shape == (out_size[1], out_size[0], 3)
    assert (out == SOURCE_COLOR).all(axis=2).all()


def test_zoomed_out_shows_background_around_photo():
    state = TransformState(image=solid((300, 300), SOURCE_COLOR), scale=0.5)
    out = compose(state, (200, 200))
    assert (out[0, 0] == 255).all()
    assert (out[199, 199] == 255).all()
    assert tuple(out[100, 100]) == SOURCE_COLOR


def test_translation_offsets_in_image_pixels():
    # source 200x100 into 100x100: cover scale 1, the window shows x 50..150
    state = TransformState(image=halves(), tx=50)
    out = compose(state, (100, 100))
    assert tuple(out[50, 50]) == BLUE
    state.tx = -50
    out = compose(state, (100, 100))
    assert tuple(out[50, 50]) == RED


def test_rotation_pivots_on_frame_center():
    state = TransformState(image=halves())
    assert tuple(compose(state, (100, 100))[50, 10]) == RED
    state.rotation = math.pi
    out = compose(state, (100, 100))
    assert tuple(out[50, 10]) == BLUE
    assert tuple(out[50, 90]) == RED
    assert not (out == 255).all(axis=2).any()


def test_alpha_is_flattened_onto_white():
    transparent = Image.new("RGBA", (50, 50), (255, 0, 0, 0))
    out = compose(TransformState(image=transparent), (50, 50))
    assert (out == 255).all()

    half = Image.new("RGBA", (50, 50), (255, 0, 0, 128))
    out = compose(TransformState(image=half), (50, 50))
    r, g, b = out[25, 25]
    assert r == 255
    assert g == pytest.approx(127, abs=1)
    assert b == pytest.approx(127, abs=1)


def test_preview_matches_downscaled_export():
    state = TransformState(image=gradient((400, 300)), scale=1.3, rotation=math.pi / 12, tx=20, ty=-5)
    small = compose(state, (230, 276)).astype(np.int16)
    large = compose(state, (2300, 2760))
    reduced = cv2.resize(large, (230, 276), interpolation=cv2.INTER_AREA).astype(np.int16)

    diff = np.abs(small - reduced)
    assert diff.mean() < 2.0
    assert diff.max() < 16


def test_preview_compositor_renders_box_size():
    frame = TargetFrame(2.3, 2.76, 100)
    preview = PreviewCompositor(frame, (115, 138))
    state = TransformState(image=gradient((400, 300)))
    img = preview.render(state)
    assert img.size == (115, 138)

    preview.resize((230, 276))
    assert preview.render(state).size == (230, 276)


def test_preview_is_export_downsampled():
    frame = TargetFrame(2.3, 2.76, 100)
    state = TransformState(image=gradient((400, 300)), scale=1.2, rotation=0.3)
    preview = PreviewCompositor(frame, (115, 138)).render(state)
    export = ExportCompositor(frame).render(state)
    expected = cv2.resize(np.asarray(export), (115, 138), interpolation=cv2.INTER_AREA)
    np.testing.assert_array_equal(np.asarray(preview), expected)


def test_export_is_deterministic():
    frame = TargetFrame(2.3, 2.76, 1000)
    assert frame.pixel_size == (2300, 2760)
    state = TransformState(image=gradient((4000, 3000)), scale=1.2, rotation=math.pi / 12, tx=50, ty=-30)
    compositor = ExportCompositor(frame)
    first = compositor.render(state.snapshot())
    second = compositor.render(state.snapshot())
    assert first.size == (2300, 2760)
    assert first.mode == "RGB"
    assert first.tobytes() == second.tobytes()


def test_compose_does_not_touch_state():
    img = gradient((80, 60))
    state = TransformState(image=img, scale=1.5, rotation=0.2, tx=3, ty=4)
    before = img.tobytes()
    compose(state, (40, 40))
    assert img.tobytes() == before
    assert (state.scale, state.rotation, state.tx, state.ty) == (1.5, 0.2, 3, 4)
