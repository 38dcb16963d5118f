"""
Headless export: build the card ZIP for one record without the editor.
"""
import os
import sys
import math
import argparse
import logging

from id_card_studio.background import BackgroundRemover, remove_background_or_original
from id_card_studio.card import BranchInfo, Branding, EmployeeRecord, build_back_face, build_front_face
from id_card_studio.config import StudioConfig
from id_card_studio.document import write_file
from id_card_studio.errors import IdCardStudioError
from id_card_studio.photo import load_photo, load_photo_url
from id_card_studio.pipeline import ExportPipeline
from id_card_studio.transform import CoordinateEngine

logger = logging.getLogger(__name__)


def build_arg_parser():
    p = argparse.ArgumentParser(description="Export a print-ready ID card (PDF + PNGs in a ZIP).")
    p.add_argument("photo", help="Photo file (JPEG/PNG) or http(s) URL of a stored photo")
    p.add_argument("-o", "--output", default=".", help="Output directory (default: current directory)")
    p.add_argument("--name", required=True, help="Employee full name")
    p.add_argument("--employee-id", required=True, help="Employee ID")
    p.add_argument("--blood-group", default="")
    p.add_argument("--branch", default="")
    p.add_argument("--branch-address", default="", help="Return address printed on the back")
    p.add_argument("--country-code", default="+91")
    p.add_argument("--emergency", default="", help="Emergency contact number")
    p.add_argument("--organisation", default=Branding.organisation_name)
    p.add_argument("--phone", default="")
    p.add_argument("--email", default="")
    p.add_argument("--website", default="")
    p.add_argument("--front-logo", help="Front logo (file, data URI or URL)")
    p.add_argument("--back-logo", help="Back logo (file, data URI or URL)")

    t = p.add_argument_group("photo transform")
    t.add_argument("--scale", type=float, default=1.0, help="User zoom, clamped to [0.5, 3.0]")
    t.add_argument("--rotation", type=float, default=0.0, help="Rotation in degrees (clockwise)")
    t.add_argument("--tx", type=float, default=0.0, help="Horizontal offset in image pixels")
    t.add_argument("--ty", type=float, default=0.0, help="Vertical offset in image pixels")

    p.add_argument("--dpi", type=int, help="Export DPI (default from ID_CARD_DPI or 1200)")
    p.add_argument("--remove-background", action="store_true",
                   help="Use the Cloudinary background removal service (falls back to the original)")
    p.add_argument("--pdf-only", action="store_true", help="Write only the PDF instead of the ZIP")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return p


def run(args) -> str:
    overrides = {"dpi": args.dpi} if args.dpi else {}
    config = StudioConfig.from_env(**overrides)

    if args.photo.startswith(("http://", "https://")):
        photo = load_photo_url(args.photo, config=config)
    else:
        photo = load_photo(args.photo, config)
    if args.remove_background:
        remover = BackgroundRemover.from_config(config) if config.background_removal_enabled else None
        result = remove_background_or_original(photo, remover)
        if result.warning:
            print(f"Warning: {result.warning}", file=sys.stderr)
        photo = result.photo

    engine = CoordinateEngine(config=config)
    engine.load_image(photo.image)
    engine.state.scale = min(config.max_zoom, max(config.min_zoom, args.scale))
    engine.state.rotation = math.radians(args.rotation)
    engine.state.tx = args.tx
    engine.state.ty = args.ty

    record = EmployeeRecord(
        full_name=args.name,
        employee_id=args.employee_id,
        blood_group=args.blood_group,
        branch=args.branch,
        emergency_contact=args.emergency,
        country_code=args.country_code,
    )
    branches = {}
    if args.branch:
        branches[args.branch] = BranchInfo(args.branch, address=args.branch_address.replace("\\n", "\n"))
    branding = Branding(
        organisation_name=args.organisation,
        front_logo=args.front_logo,
        back_logo=args.back_logo,
        contact_phone=args.phone,
        contact_email=args.email,
        contact_website=args.website,
        branches=branches,
    )

    pipeline = ExportPipeline(config)
    front = build_front_face(record, branding, config)
    back = build_back_face(record, branding, config)
    artifact = pipeline.export(engine.state, front, back, record)

    if args.pdf_only:
        return write_file(os.path.join(args.output, artifact.pdf_name), artifact.pdf_bytes)
    return write_file(os.path.join(args.output, artifact.archive_name), artifact.archive_bytes)


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    try:
        path = run(args)
    except IdCardStudioError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Wrote {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
