"""field-layout entry point.

Usage:
    python3 -m field_layout summary
    python3 -m field_layout tag 4
    python3 -m field_layout element Hub "front score" --alliance red
    python3 -m field_layout nearest 5.0 4.0
    python3 -m field_layout render field.png
"""

from __future__ import annotations

import json
import logging
import sys

from . import cli, config_manager, display
from .errors import LayoutError
from .geometry import Pose2, Pose3, Rotation3
from .layout import FieldLayout, build

logger = logging.getLogger("field-layout")


def format_pose(pose: Pose2 | Pose3) -> str:
    if isinstance(pose, Pose3):
        roll, pitch, yaw = pose.rotation.to_degrees()
        return (
            f"x={pose.x:.4f} y={pose.y:.4f} z={pose.z:.4f} m  "
            f"roll={roll:.2f} pitch={pitch:.2f} yaw={yaw:.2f} deg"
        )
    return f"x={pose.x:.4f} y={pose.y:.4f} m  heading={pose.heading_degrees:.2f} deg"


def _print_summary(layout: FieldLayout) -> None:
    print(f"Layout: {layout.name} ({layout.symmetry.value} symmetry)")
    print(f"Field: {layout.field_length:.4f} x {layout.field_width:.4f} m, tape {layout.tape_width:.4f} m")
    print(
        f"Fiducials: {layout.fiducial_count} x {layout.fiducial_family}, "
        f"{layout.fiducial_size:.4f} m"
    )
    if layout.game_piece is not None:
        dims = ", ".join(f"{k}={v:.4f} m" for k, v in layout.game_piece.dimensions.items())
        print(f"Game piece: {layout.game_piece.name} ({dims})")
    for element in layout.all_elements().values():
        tags = [f.id for f in layout.fiducials_for(element.name)]
        print(
            f"  {element.name}: poses={list(element.labels)} "
            f"dimensions={len(element.dimensions)} tags={tags}"
        )


def _run(args, layout: FieldLayout) -> None:
    if args.command == "summary":
        _print_summary(layout)
    elif args.command == "tag":
        fiducial = layout.fiducial(args.id)
        owner = " ".join(
            part for part in (
                fiducial.alliance.value if fiducial.alliance else None,
                fiducial.element,
            ) if part
        )
        suffix = f" ({owner})" if owner else ""
        print(f"Tag {fiducial.id}{suffix}: {format_pose(fiducial.pose)}")
    elif args.command == "element":
        pose = layout.element_pose(args.name, args.alliance, args.label)
        print(f"{args.name} {args.label} [{args.alliance}]: {format_pose(pose)}")
    elif args.command == "nearest":
        probe = Pose2(args.x, args.y) if args.z is None else Pose3(args.x, args.y, args.z, Rotation3())
        fiducial = layout.nearest_fiducial(probe)
        print(
            f"Nearest tag {fiducial.id} at {probe.distance_to(fiducial.pose):.4f} m: "
            f"{format_pose(fiducial.pose)}"
        )
    elif args.command == "render":
        display.save_field_image(layout, args.output, args.scale)


def main(argv=None) -> int:
    args = cli.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # Resolve spec
    try:
        spec_path = config_manager.resolve_spec_path(args.spec, args.layout)
        spec = config_manager.load_spec(spec_path)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1
    except json.JSONDecodeError as e:
        logger.error("Spec %s is not valid JSON: %s", args.spec or args.layout, e)
        return 1
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Cannot read spec %s: %s", args.spec or args.layout, e)
        return 1
    logger.info("Layout spec loaded from %s", spec_path)

    try:
        layout = build(spec)
        _run(args, layout)
    except (LayoutError, OSError, ValueError) as e:
        logger.error("%s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
