"""
Export pipeline: transform snapshot -> photo composite -> face snapshots ->
document + archive.

Every failure surfaces as an ExportError subclass naming its stage
(compose / capture / encode / assemble). Only one export may run per
pipeline; a second request is rejected instead of racing the first.
"""
import time
import logging
import threading
from concurrent.futures import Executor, Future
from typing import Optional

import cv2
import requests

from id_card_studio.card import CardFace, EmployeeRecord
from id_card_studio.compositor import ExportCompositor
from id_card_studio.config import StudioConfig
from id_card_studio.document import DocumentAssembler, ExportArtifact
from id_card_studio.errors import (
    CaptureError,
    ComposeError,
    ExportError,
    ExportInProgressError,
    PhotoInputError,
    RecordInputError,
)
from id_card_studio.snapshot import CardSnapshotter
from id_card_studio.transform import TransformState

logger = logging.getLogger(__name__)


def validate_export_request(state: TransformState, record: EmployeeRecord):
    if not state.has_image:
        raise PhotoInputError("Select a photo before exporting.")
    if not record.full_name or not record.employee_id:
        raise RecordInputError("Please fill in employee name and ID before downloading.")


class ExportPipeline:
    def __init__(self, config: Optional[StudioConfig] = None, session: Optional[requests.Session] = None,
                 snapshotter: Optional[CardSnapshotter] = None, assembler: Optional[DocumentAssembler] = None):
        self.config = config or StudioConfig()
        self.frame = self.config.photo_frame
        self.compositor = ExportCompositor(self.frame, self.config.background)
        self.snapshotter = snapshotter or CardSnapshotter(self.config, session=session)
        self.assembler = assembler or DocumentAssembler(self.config.card_width_in, self.config.card_height_in)
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _acquire(self):
        if not self._lock.acquire(blocking=False):
            raise ExportInProgressError("An export is already in progress.")

    # -------------------------
    # Entry points
    # -------------------------
    def export(self, state: TransformState, front: CardFace, back: CardFace, record: EmployeeRecord) -> ExportArtifact:
        """Run the whole export on the calling thread."""
        validate_export_request(state, record)
        self._acquire()
        try:
            return self._run(state.snapshot(), front, back, record)
        finally:
            self._lock.release()

    def submit(self, executor: Executor, state: TransformState, front: CardFace, back: CardFace,
               record: EmployeeRecord) -> Future:
        """Snapshot now, export on ``executor``.

        Input errors and a busy pipeline are raised here, synchronously; stage
        errors arrive through the returned future.
        """
        validate_export_request(state, record)
        self._acquire()
        snapshot = state.snapshot()
        try:
            return executor.submit(self._run_and_release, snapshot, front, back, record)
        except RuntimeError:
            self._lock.release()
            raise

    def _run_and_release(self, snapshot, front, back, record):
        try:
            return self._run(snapshot, front, back, record)
        finally:
            self._lock.release()

    # -------------------------
    # Stages
    # -------------------------
    def _run(self, snapshot: TransformState, front: CardFace, back: CardFace, record: EmployeeRecord) -> ExportArtifact:
        started = time.perf_counter()
        self.prefetch(front, back)
        photo = self.compose(snapshot)
        front_bitmap = self.capture(front, photo)
        back_bitmap = self.capture(back)
        artifact = self.assembler.assemble(front_bitmap, back_bitmap, record)
        logger.info("Export finished in %.2fs", time.perf_counter() - started)
        return artifact

    def prefetch(self, *faces: CardFace):
        """Resolve remote and local logos before the expensive compose."""
        for face in faces:
            self.snapshotter.prefetch(face)

    def compose(self, snapshot: TransformState):
        try:
            return self.compositor.render(snapshot)
        except (ValueError, MemoryError, cv2.error) as e:
            raise ComposeError(e) from e

    def capture(self, face: CardFace, photo=None):
        try:
            return self.snapshotter.snapshot(face, photo)
        except ExportError:
            raise
        except (ValueError, OSError, MemoryError) as e:
            raise CaptureError(f"could not flatten the {face.kind} face: {e}") from e
