"""
ID Card Studio: photo transform editor and high-resolution ID card exporter.
"""
from id_card_studio.config import StudioConfig
from id_card_studio.transform import TransformState, CoordinateEngine
from id_card_studio.geometry import TargetFrame, cover_scale
from id_card_studio.compositor import compose, PreviewCompositor, ExportCompositor
from id_card_studio.card import EmployeeRecord, Branding, BranchInfo, CardFace, build_front_face, build_back_face
from id_card_studio.snapshot import CardSnapshotter
from id_card_studio.document import DocumentAssembler, ExportArtifact
from id_card_studio.pipeline import ExportPipeline

__version__ = "1.0.0"

__all__ = [
    "StudioConfig",
    "TransformState",
    "CoordinateEngine",
    "TargetFrame",
    "cover_scale",
    "compose",
    "PreviewCompositor",
    "ExportCompositor",
    "EmployeeRecord",
    "Branding",
    "BranchInfo",
    "CardFace",
    "build_front_face",
    "build_back_face",
    "CardSnapshotter",
    "DocumentAssembler",
    "ExportArtifact",
    "ExportPipeline",
]
