"""Top-down OpenCV rendering of a field layout."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import cv2
import numpy as np

from .geometry import Pose2, Pose3
from .layout import Alliance, FieldLayout

logger = logging.getLogger(__name__)


# Colours (BGR)
FIELD_GREY = (60, 60, 60)
TAPE_WHITE = (230, 230, 230)
BLUE = (220, 120, 30)
RED = (40, 40, 220)
TAG_YELLOW = (0, 220, 255)
BG_DARK = (30, 30, 30)

FONT = cv2.FONT_HERSHEY_SIMPLEX
FONT_SCALE = 0.4
FONT_THICKNESS = 1

DEFAULT_PIXELS_PER_METER = 60
MARGIN_PX = 30
ARROW_LENGTH_M = 0.5


def image_size(layout: FieldLayout, pixels_per_meter: float = DEFAULT_PIXELS_PER_METER) -> tuple[int, int]:
    """(width, height) in pixels of the rendered field."""
    width = int(math.ceil(layout.field_length * pixels_per_meter)) + 2 * MARGIN_PX
    height = int(math.ceil(layout.field_width * pixels_per_meter)) + 2 * MARGIN_PX
    return width, height


def render_field(
    layout: FieldLayout,
    pixels_per_meter: float = DEFAULT_PIXELS_PER_METER,
    show_labels: bool = True,
) -> np.ndarray:
    """Draw the field outline, both alliances' reference poses and every fiducial.

    Field +y points up in the image.
    """
    width, height = image_size(layout, pixels_per_meter)
    image = np.full((height, width, 3), BG_DARK, dtype=np.uint8)

    def to_px(x: float, y: float) -> tuple[int, int]:
        return (
            int(round(MARGIN_PX + x * pixels_per_meter)),
            int(round(height - MARGIN_PX - y * pixels_per_meter)),
        )

    cv2.rectangle(image, to_px(0.0, 0.0), to_px(layout.field_length, layout.field_width), FIELD_GREY, -1)
    tape_px = max(1, int(round(layout.tape_width * pixels_per_meter)))
    cv2.rectangle(image, to_px(0.0, 0.0), to_px(layout.field_length, layout.field_width), TAPE_WHITE, tape_px)
    mid_x = layout.field_length / 2.0
    cv2.line(image, to_px(mid_x, 0.0), to_px(mid_x, layout.field_width), TAPE_WHITE, tape_px)

    for element in layout.all_elements().values():
        for label in element.labels:
            for alliance, colour in ((Alliance.BLUE, BLUE), (Alliance.RED, RED)):
                pose = layout.element_pose(element.name, alliance, label)
                _draw_pose(image, pose, to_px, colour)
                if show_labels:
                    cx, cy = to_px(pose.x, pose.y)
                    cv2.putText(
                        image, f"{element.name}:{label}", (cx + 6, cy + 12),
                        FONT, FONT_SCALE, colour, FONT_THICKNESS,
                    )

    half = max(2, int(round(layout.fiducial_size * pixels_per_meter / 2.0)))
    for fiducial in layout.all_fiducials():
        cx, cy = to_px(fiducial.pose.x, fiducial.pose.y)
        cv2.rectangle(image, (cx - half, cy - half), (cx + half, cy + half), TAG_YELLOW, 1)
        if show_labels:
            cv2.putText(
                image, str(fiducial.id), (cx + half + 2, cy - half),
                FONT, FONT_SCALE, TAG_YELLOW, FONT_THICKNESS,
            )

    return image


def save_field_image(
    layout: FieldLayout,
    output_path: Path,
    pixels_per_meter: float = DEFAULT_PIXELS_PER_METER,
) -> None:
    """Render *layout* and write it to *output_path* (format from the suffix)."""
    image = render_field(layout, pixels_per_meter)
    try:
        written = cv2.imwrite(str(output_path), image)
    except cv2.error as e:
        raise OSError(f"Could not write field image to {output_path}: {e}") from e
    if not written:
        raise OSError(f"Could not write field image to {output_path}")
    logger.info("Field image saved to %s (%dx%d)", output_path, image.shape[1], image.shape[0])


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _draw_pose(image: np.ndarray, pose: Pose2 | Pose3, to_px, colour: tuple[int, int, int]) -> None:
    """Dot at the pose position plus an arrow along its heading."""
    start = to_px(pose.x, pose.y)
    end = to_px(
        pose.x + ARROW_LENGTH_M * math.cos(pose.heading),
        pose.y + ARROW_LENGTH_M * math.sin(pose.heading),
    )
    cv2.circle(image, start, 4, colour, -1)
    cv2.arrowedLine(image, start, end, colour, 2, tipLength=0.3)
