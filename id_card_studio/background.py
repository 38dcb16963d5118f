"""
Remote background removal (Cloudinary).

The photo is uploaded with an unsigned preset and re-downloaded through the
``e_background_removal`` delivery transformation. Any failure falls back to
the original photo; the operator gets a warning, the photo is never dropped.
"""
import time
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from id_card_studio.config import StudioConfig
from id_card_studio.errors import BackgroundRemovalError, PhotoInputError
from id_card_studio.photo import LoadedPhoto, decode_photo

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud}/image/upload"
DELIVERY_URL = "https://res.cloudinary.com/{cloud}/image/upload/e_background_removal/f_png/{public_id}"

# Cloudinary answers 423 while the derived image is still being generated
STATUS_PENDING = 423


@dataclass(frozen=True)
class BackgroundResult:
    photo: LoadedPhoto
    url: Optional[str] = None
    warning: Optional[str] = None

    @property
    def removed(self) -> bool:
        return self.warning is None


class BackgroundRemover:
    def __init__(self, cloud_name, upload_preset, session: Optional[requests.Session] = None,
                 timeout=15.0, poll_attempts=5, poll_interval=2.0, config: Optional[StudioConfig] = None):
        if not cloud_name or not upload_preset:
            raise BackgroundRemovalError("Missing Cloudinary configuration")
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.session = session or requests.Session()
        self.timeout = timeout
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.config = config or StudioConfig()

    @classmethod
    def from_config(cls, config: StudioConfig, session: Optional[requests.Session] = None, **kwargs):
        return cls(config.cloudinary_cloud_name, config.cloudinary_upload_preset,
                   session=session, timeout=config.fetch_timeout, config=config, **kwargs)

    def upload(self, photo: LoadedPhoto) -> str:
        """Upload and return the Cloudinary public id."""
        url = UPLOAD_URL.format(cloud=self.cloud_name)
        try:
            response = self.session.post(
                url,
                data={"upload_preset": self.upload_preset},
                files={"file": (photo.name, photo.data)},
                timeout=self.timeout,
            )
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise BackgroundRemovalError(f"upload failed: {e}") from e
        if not response.ok:
            message = (payload.get("error") or {}).get("message") or "Failed to upload image to Cloudinary"
            raise BackgroundRemovalError(message)
        public_id = payload.get("public_id")
        if not public_id:
            raise BackgroundRemovalError("Invalid Cloudinary response")
        return public_id

    def transformed_url(self, public_id) -> str:
        return DELIVERY_URL.format(cloud=self.cloud_name, public_id=public_id)

    def fetch(self, url) -> bytes:
        for attempt in range(1, self.poll_attempts + 1):
            try:
                response = self.session.get(url, timeout=self.timeout)
            except requests.RequestException as e:
                raise BackgroundRemovalError(f"download failed: {e}") from e
            if response.status_code == STATUS_PENDING and attempt < self.poll_attempts:
                logger.debug("Background removal pending (attempt %d/%d)", attempt, self.poll_attempts)
                time.sleep(self.poll_interval)
                continue
            if not response.ok:
                raise BackgroundRemovalError(f"download failed with HTTP {response.status_code}")
            return response.content
        raise BackgroundRemovalError("background removal did not finish in time")

    def remove_background(self, photo: LoadedPhoto) -> BackgroundResult:
        public_id = self.upload(photo)
        url = self.transformed_url(public_id)
        data = self.fetch(url)
        try:
            processed = decode_photo(data, name=photo.name, config=self.config, check_size=False)
        except PhotoInputError as e:
            raise BackgroundRemovalError(f"service returned an unusable image: {e}") from e
        return BackgroundResult(photo=processed, url=url)


def remove_background_or_original(photo: LoadedPhoto, remover: Optional[BackgroundRemover]) -> BackgroundResult:
    """Background-removed photo, or the original plus a warning on any failure."""
    if remover is None:
        return BackgroundResult(photo=photo, warning="Background removal is not configured; using the original photo.")
    try:
        return remover.remove_background(photo)
    except BackgroundRemovalError as e:
        logger.warning("Background removal failed, using original photo: %s", e)
        return BackgroundResult(photo=photo, warning=f"Background removal failed ({e}); using the original photo.")
