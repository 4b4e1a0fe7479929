"""Field layout model: validated field geometry and fiducial (AprilTag) poses.

A layout is built once from a declarative spec and then only queried. Element
poses are stored for the blue alliance only; red poses are derived with the
layout's symmetry transform, so the two sides are consistent by construction.
Specs may also author red poses, which ``build`` cross-checks against the
transform and then discards.
"""

from __future__ import annotations

import functools
import logging
import math
import operator
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

import numpy as np

from . import config_manager, constants
from .errors import NotFoundError, ValidationError
from .geometry import Pose2, Pose3, Rotation3, Symmetry, angle_difference

logger = logging.getLogger(__name__)


class Alliance(Enum):
    BLUE = "blue"
    RED = "red"

    @classmethod
    def parse(cls, value: Alliance | str) -> Alliance:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown alliance: {value!r}") from None


class LayoutType(Enum):
    """Packaged layouts, by spec file name."""

    OFFICIAL_2026 = "2026-rebuilt"


def normalize_key(name: str) -> str:
    """Canonical form of an element name or pose label ("Front score" -> "front_score")."""
    return re.sub(r"[\s\-]+", "_", str(name).strip().lower())


# ---------------------------------------------------------------------------
# Layout types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldElement:
    """A named field structure with its dimensions and blue-side reference poses."""

    name: str
    dimensions: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    angles: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    poses: Mapping[str, Pose2 | Pose3] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(self.poses)

    def dimension(self, key: str) -> float:
        """Length dimension in meters."""
        try:
            return self.dimensions[normalize_key(key)]
        except KeyError:
            raise NotFoundError(f"Element {self.name!r} has no dimension {key!r}") from None

    def blue_pose(self, label: str) -> Pose2 | Pose3:
        try:
            return self.poses[normalize_key(label)]
        except KeyError:
            raise NotFoundError(
                f"Element {self.name!r} has no pose {label!r} "
                f"(known: {', '.join(self.poses) or 'none'})"
            ) from None


@dataclass(frozen=True)
class Fiducial:
    """An AprilTag at a fixed pose, optionally tied to the element it is mounted on."""

    id: int
    pose: Pose3
    element: str | None = None
    alliance: Alliance | None = None

    def corner_points(self, size: float) -> np.ndarray:
        """Tag corners in the field frame as a 4x3 array.

        Order is bottom-left, bottom-right, top-right, top-left as seen by a
        viewer facing the tag.
        """
        h = size / 2.0
        local = np.array([
            [0.0, -h, -h],
            [0.0, h, -h],
            [0.0, h, h],
            [0.0, -h, h],
        ])
        return self.pose.transform_points(local)


@dataclass(frozen=True)
class GamePiece:
    name: str
    dimensions: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class FieldLayout:
    """Immutable field geometry plus the complete fiducial set.

    ``fiducials`` is ordered by id and contiguous, so ``fiducials[i].id == i + 1``.
    ``elements`` is keyed by normalized element name.
    """

    name: str
    field_length: float
    field_width: float
    tape_width: float
    fiducial_count: int
    fiducial_size: float
    fiducial_family: str
    symmetry: Symmetry
    elements: Mapping[str, FieldElement]
    fiducials: tuple[Fiducial, ...]
    game_piece: GamePiece | None = None

    # ---- Fiducials ---------------------------------------------------------

    def fiducial(self, fiducial_id: int) -> Fiducial:
        """Tag by id; any integral id works, including numpy ids from detectors."""
        index = None
        if not isinstance(fiducial_id, bool):
            try:
                index = operator.index(fiducial_id)
            except TypeError:
                pass
        if index is not None and 1 <= index <= len(self.fiducials):
            return self.fiducials[index - 1]
        raise NotFoundError(
            f"No fiducial with id {fiducial_id!r} in layout {self.name!r} "
            f"(ids 1-{self.fiducial_count})"
        )

    def fiducial_pose(self, fiducial_id: int) -> Pose3:
        return self.fiducial(fiducial_id).pose

    def all_fiducials(self) -> tuple[Fiducial, ...]:
        return self.fiducials

    def fiducials_for(
        self,
        element_name: str,
        alliance: Alliance | str | None = None,
    ) -> tuple[Fiducial, ...]:
        """Fiducials mounted on *element_name*, optionally for one alliance only."""
        element = self.element(element_name)
        side = Alliance.parse(alliance) if alliance is not None else None
        return tuple(
            f for f in self.fiducials
            if f.element == element.name and (side is None or f.alliance is side)
        )

    def nearest_fiducial(self, pose: Pose2 | Pose3) -> Fiducial:
        """Fiducial closest to *pose*; ties go to the lowest id.

        A Pose2 probe is compared in the plane, a Pose3 probe in 3-D.
        Non-finite coordinates raise ValueError.
        """
        if not all(math.isfinite(v) for v in pose.translation):
            raise ValueError(f"Cannot find the nearest fiducial to non-finite pose {pose}")
        best = self.fiducials[0]
        best_distance = pose.distance_to(best.pose)
        for candidate in self.fiducials[1:]:
            distance = pose.distance_to(candidate.pose)
            if distance < best_distance:
                best, best_distance = candidate, distance
        return best

    # ---- Elements ----------------------------------------------------------

    def all_elements(self) -> Mapping[str, FieldElement]:
        return self.elements

    def element(self, name: str) -> FieldElement:
        try:
            return self.elements[normalize_key(name)]
        except KeyError:
            raise NotFoundError(
                f"No field element {name!r} in layout {self.name!r} "
                f"(known: {', '.join(e.name for e in self.elements.values())})"
            ) from None

    def symmetric(self, pose: Pose2 | Pose3, alliance: Alliance | str) -> Pose2 | Pose3:
        """Express a blue-side *pose* for *alliance* using this field's symmetry."""
        if Alliance.parse(alliance) is Alliance.BLUE:
            return pose
        return self.symmetry.apply(pose, self.field_length, self.field_width)

    def element_pose(
        self,
        element_name: str,
        alliance: Alliance | str,
        pose_label: str,
    ) -> Pose2 | Pose3:
        """Reference pose *pose_label* of *element_name* for *alliance*.

        Red poses follow the layout's declared symmetry: ``mirror`` for
        mirrored layouts, ``rotate`` for rotated ones such as the packaged
        2026 field. On a rotated layout the red pose is therefore not always
        ``mirror`` of the blue one.
        """
        blue = self.element(element_name).blue_pose(pose_label)
        return self.symmetric(blue, alliance)

    @property
    def center(self) -> Pose2:
        return Pose2(self.field_length / 2.0, self.field_width / 2.0)


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------

def _require(record: Mapping[str, Any], key: str, context: str) -> Any:
    if not isinstance(record, Mapping):
        raise ValidationError(f"{context}: expected an object, got {type(record).__name__}")
    if key not in record:
        raise ValidationError(f"{context}: missing {key!r}")
    return record[key]


def _number(value: Any, context: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{context}: expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"{context}: expected a finite number, got {value!r}")
    return float(value)


def _length(value: Any, scale: float, context: str) -> float:
    number = _number(value, context)
    if number < 0.0:
        raise ValidationError(f"{context}: negative length {number!r}")
    return number * scale


def _lengths(record: Any, scale: float, context: str) -> Mapping[str, float]:
    if record is None:
        return MappingProxyType({})
    if not isinstance(record, Mapping):
        raise ValidationError(f"{context}: expected an object of lengths")
    return MappingProxyType({
        normalize_key(k): _length(v, scale, f"{context}.{k}") for k, v in record.items()
    })


def _pose(record: Any, scale: float, context: str) -> Pose2 | Pose3:
    x = _number(_require(record, "x", context), f"{context}.x") * scale
    y = _number(_require(record, "y", context), f"{context}.y") * scale
    heading = math.radians(_number(record.get("heading", 0.0), f"{context}.heading"))
    if "z" not in record:
        return Pose2(x, y, heading)
    z = _number(record["z"], f"{context}.z") * scale
    roll = math.radians(_number(record.get("roll", 0.0), f"{context}.roll"))
    pitch = math.radians(_number(record.get("pitch", 0.0), f"{context}.pitch"))
    return Pose3(x, y, z, Rotation3(roll, pitch, heading))


def _poses(record: Any, scale: float, context: str) -> dict[str, Pose2 | Pose3]:
    if record is None:
        return {}
    if not isinstance(record, Mapping):
        raise ValidationError(f"{context}: expected an object of labeled poses")
    poses: dict[str, Pose2 | Pose3] = {}
    for label, value in record.items():
        key = normalize_key(label)
        if key in poses:
            raise ValidationError(f"{context}: duplicate pose label {label!r}")
        poses[key] = _pose(value, scale, f"{context}.{label}")
    return poses


def _check_symmetry(
    element: str,
    blue: Mapping[str, Pose2 | Pose3],
    red: Mapping[str, Pose2 | Pose3],
    symmetry: Symmetry,
    field_length: float,
    field_width: float,
) -> None:
    """Authored red poses must cover the blue labels and match the transform."""
    for label in blue:
        if label not in red:
            raise ValidationError(f"Element {element!r} is missing red pose {label!r}")
    for label in red:
        if label not in blue:
            raise ValidationError(f"Element {element!r} red pose {label!r} has no blue counterpart")

    for label, blue_pose in blue.items():
        expected = symmetry.apply(blue_pose, field_length, field_width)
        actual = red[label]
        if type(actual) is not type(expected):
            raise ValidationError(
                f"Element {element!r} pose {label!r}: red and blue poses differ in dimension"
            )
        offset = math.dist(expected.translation, actual.translation)
        turn = angle_difference(expected.heading, actual.heading)
        if offset > constants.SYMMETRY_TOLERANCE_M or turn > constants.SYMMETRY_TOLERANCE_RAD:
            raise ValidationError(
                f"Element {element!r} red pose {label!r} is not the {symmetry.value} image "
                f"of its blue pose (off by {offset:.4f} m, {turn:.4f} rad)"
            )
        if isinstance(expected, Pose3) and not expected.rotation.isclose(
            actual.rotation, constants.SYMMETRY_TOLERANCE_RAD
        ):
            raise ValidationError(
                f"Element {element!r} red pose {label!r} is not the {symmetry.value} image "
                f"of its blue pose (roll or pitch differs)"
            )


def _fiducials(
    record: Any,
    scale: float,
    elements: Mapping[str, FieldElement],
) -> tuple[int, float, str, tuple[Fiducial, ...]]:
    count = _require(record, "count", "fiducials")
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValidationError(f"fiducials.count: expected a positive integer, got {count!r}")
    if "size" in record:
        size = _length(record["size"], scale, "fiducials.size")
    else:
        size = constants.FIDUCIAL_SIZE_IN * constants.INCHES_TO_METERS
    family = str(record.get("family", constants.FIDUCIAL_FAMILY))

    tags = _require(record, "tags", "fiducials")
    if not isinstance(tags, list):
        raise ValidationError("fiducials.tags: expected a list")

    by_id: dict[int, Fiducial] = {}
    for index, tag in enumerate(tags):
        context = f"fiducials.tags[{index}]"
        tag_id = _require(tag, "id", context)
        if isinstance(tag_id, bool) or not isinstance(tag_id, int):
            raise ValidationError(f"{context}: fiducial id must be an integer, got {tag_id!r}")
        context = f"fiducial {tag_id}"
        if tag_id in by_id:
            raise ValidationError(f"Duplicate fiducial id {tag_id}")
        if not 1 <= tag_id <= count:
            raise ValidationError(f"Fiducial id {tag_id} outside declared range [1, {count}]")

        pose = Pose3(
            _number(_require(tag, "x", context), f"{context}.x") * scale,
            _number(_require(tag, "y", context), f"{context}.y") * scale,
            _number(_require(tag, "z", context), f"{context}.z") * scale,
            Rotation3.from_degrees(
                _number(tag.get("roll", 0.0), f"{context}.roll"),
                _number(tag.get("pitch", 0.0), f"{context}.pitch"),
                _number(tag.get("yaw", 0.0), f"{context}.yaw"),
            ),
        )

        element_name = None
        if tag.get("element") is not None:
            key = normalize_key(tag["element"])
            if key not in elements:
                raise ValidationError(f"{context} references unknown element {tag['element']!r}")
            element_name = elements[key].name

        alliance = None
        if tag.get("alliance") is not None:
            try:
                alliance = Alliance.parse(tag["alliance"])
            except ValueError as e:
                raise ValidationError(f"{context}: {e}") from None

        by_id[tag_id] = Fiducial(tag_id, pose, element_name, alliance)

    missing = [i for i in range(1, count + 1) if i not in by_id]
    if missing:
        raise ValidationError(f"Fiducial ids missing from [1, {count}]: {missing}")

    return count, size, family, tuple(by_id[i] for i in range(1, count + 1))


def build(spec: Mapping[str, Any]) -> FieldLayout:
    """Validate *spec* and build an immutable FieldLayout.

    Raises ValidationError naming the offending element or fiducial. Nothing
    is returned unless every check passes.
    """
    if not isinstance(spec, Mapping):
        raise ValidationError(f"Layout spec must be an object, got {type(spec).__name__}")

    name = str(spec.get("name", "unnamed"))
    units = spec.get("units", constants.DEFAULT_UNITS)
    if units not in constants.UNIT_SCALE:
        raise ValidationError(
            f"Unknown units {units!r} (expected one of {', '.join(constants.UNIT_SCALE)})"
        )
    scale = constants.UNIT_SCALE[units]

    try:
        symmetry = Symmetry.parse(spec.get("symmetry", Symmetry.MIRRORED.value))
    except ValueError as e:
        raise ValidationError(str(e)) from None

    field_record = _require(spec, "field", "layout")
    field_length = _length(_require(field_record, "length", "field"), scale, "field.length")
    field_width = _length(_require(field_record, "width", "field"), scale, "field.width")
    if field_length == 0.0 or field_width == 0.0:
        raise ValidationError("field: length and width must be positive")
    tape_width = _length(field_record.get("tape_width", 0.0), scale, "field.tape_width")

    element_records = spec.get("elements", [])
    if not isinstance(element_records, list):
        raise ValidationError("elements: expected a list")

    elements: dict[str, FieldElement] = {}
    for index, record in enumerate(element_records):
        element_name = str(_require(record, "name", f"elements[{index}]"))
        key = normalize_key(element_name)
        if key in elements:
            raise ValidationError(f"Duplicate element {element_name!r}")
        context = f"element {element_name!r}"

        angles = record.get("angles") or {}
        if not isinstance(angles, Mapping):
            raise ValidationError(f"{context}.angles: expected an object of degrees")
        blue = _poses(record.get("poses"), scale, f"{context}.poses")
        if "red_poses" in record:
            red = _poses(record["red_poses"], scale, f"{context}.red_poses")
            _check_symmetry(element_name, blue, red, symmetry, field_length, field_width)

        elements[key] = FieldElement(
            name=element_name,
            dimensions=_lengths(record.get("dimensions"), scale, f"{context}.dimensions"),
            angles=MappingProxyType({
                normalize_key(k): _number(v, f"{context}.angles.{k}") for k, v in angles.items()
            }),
            poses=MappingProxyType(blue),
        )
        logger.debug(
            "Element %s: %d poses, %d dimensions",
            element_name, len(blue), len(elements[key].dimensions),
        )

    count, size, family, fiducials = _fiducials(
        _require(spec, "fiducials", "layout"), scale, elements,
    )

    game_piece = None
    if spec.get("game_piece") is not None:
        piece = spec["game_piece"]
        game_piece = GamePiece(
            name=str(_require(piece, "name", "game_piece")),
            dimensions=_lengths(piece.get("dimensions"), scale, "game_piece.dimensions"),
        )

    layout = FieldLayout(
        name=name,
        field_length=field_length,
        field_width=field_width,
        tape_width=tape_width,
        fiducial_count=count,
        fiducial_size=size,
        fiducial_family=family,
        symmetry=symmetry,
        elements=MappingProxyType(elements),
        fiducials=fiducials,
        game_piece=game_piece,
    )
    logger.info(
        "Built field layout %r: %.3f x %.3f m, %d fiducials, %d elements (%s)",
        name, field_length, field_width, count, len(elements), symmetry.value,
    )
    return layout


# ---------------------------------------------------------------------------
# Process-wide layouts
# ---------------------------------------------------------------------------

@functools.lru_cache(maxsize=None)
def _load_packaged(name: str) -> FieldLayout:
    path = config_manager.packaged_spec_path(name)
    return build(config_manager.load_spec(path))


def get_layout(layout: LayoutType | str = LayoutType.OFFICIAL_2026) -> FieldLayout:
    """Return the packaged layout, building it on first use.

    Build once during startup, before any concurrent readers exist.
    """
    name = layout.value if isinstance(layout, LayoutType) else layout
    return _load_packaged(name)
