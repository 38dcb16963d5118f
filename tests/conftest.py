"""
Shared fixtures for ID Card Studio tests.

Provides synthetic photos, small-DPI configs and a fake requests session so
no test touches the network.
"""
import io
import base64

import numpy as np
import pytest
import requests
from PIL import Image

from id_card_studio.card import BranchInfo, Branding, EmployeeRecord
from id_card_studio.config import StudioConfig


# ── Images ──────────────────────────────────────────────────────────────

def solid(size, color=(10, 120, 200), mode="RGB"):
    return Image.new(mode, size, color)


def gradient(size):
    """Smooth RGB gradient; safe to compare across resampling."""
    w, h = size
    x = np.linspace(0, 255, w, dtype=np.float32)[None, :]
    y = np.linspace(0, 255, h, dtype=np.float32)[:, None]
    r = np.broadcast_to(x, (h, w))
    g = np.broadcast_to(y, (h, w))
    b = np.full((h, w), 96, dtype=np.float32)
    arr = np.stack([r, g, b], axis=2).astype(np.uint8)
    return Image.fromarray(arr, "RGB")


def encode(img, fmt="PNG"):
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def data_uri(img):
    return "data:image/png;base64," + base64.b64encode(encode(img)).decode("ascii")


# ── Fake HTTP ───────────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, status_code=200, content=b"", json_data=None):
        self.status_code = status_code
        self.content = content
        self._json = json_data

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakeSession:
    """Maps (method, url) to a response, a list of responses, or an exception."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def _respond(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        route = self.routes.get((method, url))
        if route is None:
            raise requests.ConnectionError(f"no route for {method} {url}")
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, Exception):
            raise route
        return route

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("POST", url, **kwargs)


# ── Fixtures ────────────────────────────────────────────────────────────

@pytest.fixture
def config():
    """Default layout at a small DPI so exports stay fast."""
    return StudioConfig(dpi=120)


@pytest.fixture
def photo_image():
    return gradient((400, 300))


@pytest.fixture
def record():
    return EmployeeRecord(
        full_name="Jane O'Neil-Smith",
        employee_id="E-042",
        blood_group="O+",
        branch="HYD",
        emergency_contact="9876543210",
        country_code="+91",
    )


@pytest.fixture
def branding():
    return Branding(
        front_logo=solid((200, 60), (20, 20, 20)),
        back_logo=data_uri(solid((240, 80), (200, 30, 30))),
        contact_phone="+91 40 1234 5678",
        contact_email="hr@example.com",
        contact_website="www.example.com",
        branches={"HYD": BranchInfo("HYD", address="Plot 9, Hitech City\nHyderabad 500081")},
    )


@pytest.fixture
def fake_session():
    return FakeSession()
