"""
Exception types raised by the photo input and export pipeline.
"""

STAGE_COMPOSE = "compose"
STAGE_CAPTURE = "capture"
STAGE_ENCODE = "encode"
STAGE_ASSEMBLE = "assemble"


class IdCardStudioError(Exception):
    """Base class for every error raised by id_card_studio."""


class InputError(IdCardStudioError):
    """Rejected user input; raised before any state is mutated."""


class PhotoInputError(InputError):
    """The selected photograph was rejected (type, size, decoding, or missing)."""


class RecordInputError(InputError):
    """The card record is missing fields required for export."""


class BackgroundRemovalError(IdCardStudioError):
    """The remote background-removal service failed."""


class ExportInProgressError(IdCardStudioError):
    """An export is already running for this card pair."""


class ExportError(IdCardStudioError):
    """An export attempt failed at a specific stage."""

    stage = None

    def __init__(self, reason, stage=None):
        if stage is not None:
            self.stage = stage
        self.reason = str(reason)
        super().__init__(f"[{self.stage}] {self.reason}")


class ComposeError(ExportError):
    stage = STAGE_COMPOSE


class CaptureError(ExportError):
    stage = STAGE_CAPTURE


class EncodeError(ExportError):
    stage = STAGE_ENCODE


class AssembleError(ExportError):
    stage = STAGE_ASSEMBLE


class OutputError(IdCardStudioError):
    """A finished artifact could not be written to disk."""
