"""Command-line argument parsing for field-layout."""

import argparse
from pathlib import Path

from . import constants


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="field-layout",
        description="Query the field geometry and AprilTag layout",
    )

    parser.add_argument(
        "--layout",
        default=constants.DEFAULT_LAYOUT,
        help=f"Packaged layout name (default: {constants.DEFAULT_LAYOUT})",
    )
    parser.add_argument(
        "--spec",
        type=Path,
        default=None,
        help=f"Path to a layout spec JSON (overrides --layout and ${constants.SPEC_ENV_VAR})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="Print field dimensions, elements and fiducial count")

    tag = sub.add_parser("tag", help="Print the pose of one fiducial")
    tag.add_argument("id", type=int, help="Fiducial id")

    element = sub.add_parser("element", help="Print a reference pose of a field element")
    element.add_argument("name", help="Element name, e.g. Hub")
    element.add_argument("label", help="Pose label, e.g. front_score")
    element.add_argument(
        "--alliance",
        choices=["blue", "red"],
        default="blue",
        help="Alliance to express the pose for",
    )

    nearest = sub.add_parser("nearest", help="Find the fiducial closest to a point (meters)")
    nearest.add_argument("x", type=float)
    nearest.add_argument("y", type=float)
    nearest.add_argument(
        "--z",
        type=float,
        default=None,
        help="Probe elevation; when given, distance is measured in 3-D",
    )

    render = sub.add_parser("render", help="Write a top-down image of the field")
    render.add_argument("output", type=Path, metavar="OUTPUT.png")
    render.add_argument(
        "--scale",
        type=float,
        default=60.0,
        help="Pixels per meter",
    )

    return parser.parse_args(argv)
