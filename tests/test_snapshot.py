"""
Tests for card templates and the card snapshotter
"""
import pytest

from id_card_studio.card import (
    BACK, FRONT, PHOTO_BOX_FILL, Branding, CardFace, EmployeeRecord, ImageElement, PhotoSlot, TextElement,
    build_back_face, build_front_face,
)
from id_card_studio.config import StudioConfig
from id_card_studio.errors import STAGE_CAPTURE, CaptureError
from id_card_studio.geometry import TargetFrame
from id_card_studio.snapshot import CardSnapshotter

from conftest import FakeResponse, data_uri, encode, solid

LOGO_URL = "https://cdn.example.com/logo.png"


@pytest.fixture
def snapshotter(config, fake_session):
    return CardSnapshotter(config, session=fake_session)


class TestTemplates:
    def test_front_face_layout(self, record, branding, config):
        face = build_front_face(record, branding, config)
        assert face.kind == FRONT
        assert face.photo_slot().box == (0, 89, 230, 276)
        texts = [el for el in face.elements if isinstance(el, TextElement)]
        assert texts[0].lines == ("JANE O'NEIL-SMITH",)
        assert [el.name for el in face.image_elements()] == ["front_logo"]

    def test_front_face_placeholder_name(self, branding, config):
        face = build_front_face(EmployeeRecord(), branding, config)
        texts = [el for el in face.elements if isinstance(el, TextElement)]
        assert texts[0].lines == ("FULL NAME",)

    def test_back_face_contents(self, record, branding, config):
        face = build_back_face(record, branding, config)
        assert face.kind == BACK
        assert face.photo_slot() is None
        words = " ".join(" ".join(el.lines) for el in face.elements if isinstance(el, TextElement))
        assert "E-042" in words
        assert "+91 9876543210" in words
        assert "Hitech City" in words
        assert "Tel : +91 40 1234 5678" in words
        assert "hr@example.com" in words

    def test_back_face_unknown_branch(self, record, config):
        record.branch = "BLR"
        face = build_back_face(record, Branding(), config)
        words = " ".join(" ".join(el.lines) for el in face.elements if isinstance(el, TextElement))
        assert "Address not configured for BLR" in words
        assert "Tel : —" in words
        assert face.image_elements() == []

    def test_front_face_rejects_mismatched_frame(self, record, branding, config):
        with pytest.raises(ValueError, match="does not match the photo box"):
            build_front_face(record, branding, config, frame=TargetFrame(2.125, 3.0, 120))

    def test_front_face_accepts_matching_frame(self, record, branding, config):
        face = build_front_face(record, branding, config, frame=TargetFrame(2.3, 2.76, 100))
        assert face.photo_slot() is not None


class TestEmbedding:
    def test_data_uri_is_decoded(self, snapshotter):
        img = solid((20, 10), (1, 2, 3))
        assert snapshotter.embed(data_uri(img)) == encode(img)

    def test_remote_image_fetched_once(self, snapshotter, fake_session):
        fake_session.routes[("GET", LOGO_URL)] = FakeResponse(200, encode(solid((40, 20))))
        face = CardFace(FRONT, (ImageElement("logo", (10, 10, 40, 20), LOGO_URL),))
        snapshotter.snapshot(face)
        snapshotter.snapshot(face)
        assert len(fake_session.calls) == 1
        _, _, kwargs = fake_session.calls[0]
        assert kwargs["timeout"] == snapshotter.config.fetch_timeout

    def test_prefetch_warms_cache(self, snapshotter, fake_session):
        fake_session.routes[("GET", LOGO_URL)] = FakeResponse(200, encode(solid((40, 20))))
        face = CardFace(FRONT, (ImageElement("logo", (10, 10, 40, 20), LOGO_URL),))
        snapshotter.prefetch(face)
        snapshotter.snapshot(face)
        assert len(fake_session.calls) == 1

    def test_failed_fetch_is_a_capture_error(self, snapshotter, fake_session):
        fake_session.routes[("GET", LOGO_URL)] = FakeResponse(404)
        face = CardFace(BACK, (ImageElement("back_logo", (10, 10, 40, 20), LOGO_URL),))
        with pytest.raises(CaptureError) as exc:
            snapshotter.snapshot(face)
        assert exc.value.stage == STAGE_CAPTURE
        assert "back_logo" in str(exc.value)

    def test_prefetch_failure_is_a_capture_error(self, snapshotter, fake_session):
        fake_session.routes[("GET", LOGO_URL)] = FakeResponse(500)
        face = CardFace(FRONT, (ImageElement("front_logo", (10, 10, 40, 20), LOGO_URL),))
        with pytest.raises(CaptureError, match="front_logo"):
            snapshotter.prefetch(face)

    def test_embed_cache_is_bounded(self, config):
        snapshotter = CardSnapshotter(config, max_embedded=2)
        uris = [data_uri(solid((4, 4), (i, i, i))) for i in range(3)]
        for uri in uris:
            snapshotter.embed(uri)
        assert list(snapshotter._embedded) == uris[1:]

    @pytest.mark.parametrize("source", ["/nonexistent/logo.png", b"not an image", 42])
    def test_unresolvable_sources_fail_capture(self, snapshotter, source):
        face = CardFace(FRONT, (ImageElement("logo", (10, 10, 40, 20), source),))
        with pytest.raises(CaptureError):
            snapshotter.snapshot(face)


class TestSnapshot:
    def test_canvas_is_card_size_at_dpi(self, snapshotter, record, branding, config):
        front = snapshotter.snapshot(build_front_face(record, branding, config))
        back = snapshotter.snapshot(build_back_face(record, branding, config))
        assert front.size == config.card_frame.pixel_size
        assert back.size == front.size
        assert front.mode == "RGB"

    def test_photo_fills_slot(self, snapshotter, config):
        face = CardFace(FRONT, (PhotoSlot(config.photo_box),))
        photo = solid(config.photo_frame.pixel_size, (200, 40, 40))
        img = snapshotter.snapshot(face, photo=photo)
        assert img.getpixel((127, 250)) == (200, 40, 40)
        # above the slot stays background
        assert img.getpixel((127, 50)) == (255, 255, 255)

    def test_empty_slot_uses_placeholder_fill(self, snapshotter, config):
        face = CardFace(FRONT, (PhotoSlot(config.photo_box),))
        img = snapshotter.snapshot(face)
        assert img.getpixel((127, 250)) == PHOTO_BOX_FILL

    def test_mismatched_photo_box_is_rejected(self, snapshotter):
        face = CardFace(FRONT, (PhotoSlot((0, 89, 230, 200)),))
        with pytest.raises(CaptureError):
            snapshotter.snapshot(face, photo=solid((255, 306)))

    def test_logo_is_drawn(self, snapshotter, config):
        face = CardFace(FRONT, (ImageElement("logo", (0, 0, 230, 100), solid((230, 100), (0, 128, 0))),))
        img = snapshotter.snapshot(face)
        assert img.getpixel((127, 50)) == (0, 128, 0)

    def test_source_face_is_not_mutated(self, snapshotter, record, branding, config):
        face = build_back_face(record, branding, config)
        snapshotter.snapshot(face)
        assert not any(el.resolved for el in face.image_elements())


@pytest.mark.parametrize("dpi", [120, 300, 600, 1200])
def test_faces_are_card_size_at_any_dpi(record, branding, dpi):
    cfg = StudioConfig(dpi=dpi)
    snapshotter = CardSnapshotter(cfg)
    front = build_front_face(record, branding, cfg)
    back = build_back_face(record, branding, cfg)
    assert snapshotter.canvas_size(front) == cfg.card_frame.pixel_size
    assert snapshotter.canvas_size(back) == cfg.card_frame.pixel_size


def test_default_dpi_back_face_bitmap(record, branding):
    cfg = StudioConfig()
    img = CardSnapshotter(cfg).snapshot(build_back_face(record, branding, cfg))
    assert img.size == (2550, 4050)
