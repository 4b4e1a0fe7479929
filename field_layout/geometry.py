"""Poses in the field frame and the alliance symmetry transforms.

All lengths are meters and all angles radians. The field frame has its origin
at the blue alliance's near corner, +x toward the red alliance wall, +z up.

Orientation convention for Pose3 is extrinsic Z-Y-X (yaw, then pitch, then
roll), i.e. R = Rz(yaw) @ Ry(pitch) @ Rx(roll). A fiducial's +x axis points
out of the tag face.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum

import cv2
import numpy as np

from . import constants


def inches_to_meters(value: float) -> float:
    """Convert inches to meters (exact factor 0.0254)."""
    return value * constants.INCHES_TO_METERS


def meters_to_inches(value: float) -> float:
    return value / constants.INCHES_TO_METERS


def wrap_angle(angle: float) -> float:
    """Wrap *angle* (radians) into (-pi, pi]."""
    return math.pi - (math.pi - angle) % math.tau


def angle_difference(a: float, b: float) -> float:
    """Smallest absolute difference between two angles, in [0, pi]."""
    return abs(wrap_angle(a - b))


# ---------------------------------------------------------------------------
# Rotations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rotation3:
    """3-D orientation as roll/pitch/yaw (radians, each wrapped to (-pi, pi])."""

    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "roll", wrap_angle(float(self.roll)))
        object.__setattr__(self, "pitch", wrap_angle(float(self.pitch)))
        object.__setattr__(self, "yaw", wrap_angle(float(self.yaw)))

    @classmethod
    def from_degrees(cls, roll: float = 0.0, pitch: float = 0.0, yaw: float = 0.0) -> Rotation3:
        return cls(math.radians(roll), math.radians(pitch), math.radians(yaw))

    def to_degrees(self) -> tuple[float, float, float]:
        """Return (roll, pitch, yaw) in degrees."""
        return (math.degrees(self.roll), math.degrees(self.pitch), math.degrees(self.yaw))

    def matrix(self) -> np.ndarray:
        """3x3 rotation matrix Rz(yaw) @ Ry(pitch) @ Rx(roll)."""
        cr, sr = math.cos(self.roll), math.sin(self.roll)
        cp, sp = math.cos(self.pitch), math.sin(self.pitch)
        cy, sy = math.cos(self.yaw), math.sin(self.yaw)
        rz = np.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]])
        ry = np.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]])
        rx = np.array([[1.0, 0.0, 0.0], [0.0, cr, -sr], [0.0, sr, cr]])
        return rz @ ry @ rx

    def quaternion(self) -> np.ndarray:
        """Unit quaternion (w, x, y, z)."""
        cr, sr = math.cos(self.roll / 2.0), math.sin(self.roll / 2.0)
        cp, sp = math.cos(self.pitch / 2.0), math.sin(self.pitch / 2.0)
        cy, sy = math.cos(self.yaw / 2.0), math.sin(self.yaw / 2.0)
        return np.array([
            cr * cp * cy + sr * sp * sy,
            sr * cp * cy - cr * sp * sy,
            cr * sp * cy + sr * cp * sy,
            cr * cp * sy - sr * sp * cy,
        ])

    def isclose(self, other: Rotation3, abs_tol: float = 1e-9) -> bool:
        # Compare matrices so equivalent Euler triples near gimbal lock match.
        return bool(np.allclose(self.matrix(), other.matrix(), rtol=0.0, atol=abs_tol))


# ---------------------------------------------------------------------------
# Poses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Pose2:
    """Planar pose: position (m) and heading (rad, wrapped to (-pi, pi])."""

    x: float
    y: float
    heading: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "heading", wrap_angle(float(self.heading)))

    @classmethod
    def from_inches(cls, x_in: float, y_in: float, heading_deg: float = 0.0) -> Pose2:
        return cls(inches_to_meters(x_in), inches_to_meters(y_in), math.radians(heading_deg))

    @property
    def heading_degrees(self) -> float:
        return math.degrees(self.heading)

    @property
    def translation(self) -> np.ndarray:
        return np.array([self.x, self.y])

    def to_pose2(self) -> Pose2:
        return self

    def distance_to(self, other: Pose2 | Pose3) -> float:
        """Planar distance to *other*."""
        return math.hypot(other.x - self.x, other.y - self.y)

    def isclose(self, other: Pose2, abs_tol: float = 1e-9) -> bool:
        return (
            isinstance(other, Pose2)
            and math.isclose(self.x, other.x, rel_tol=0.0, abs_tol=abs_tol)
            and math.isclose(self.y, other.y, rel_tol=0.0, abs_tol=abs_tol)
            and angle_difference(self.heading, other.heading) <= abs_tol
        )


@dataclass(frozen=True)
class Pose3:
    """Spatial pose: position (m) and orientation."""

    x: float
    y: float
    z: float
    rotation: Rotation3 = field(default_factory=Rotation3)

    def __post_init__(self):
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "z", float(self.z))

    @classmethod
    def from_inches(
        cls,
        x_in: float,
        y_in: float,
        z_in: float,
        yaw_deg: float = 0.0,
        roll_deg: float = 0.0,
        pitch_deg: float = 0.0,
    ) -> Pose3:
        return cls(
            inches_to_meters(x_in),
            inches_to_meters(y_in),
            inches_to_meters(z_in),
            Rotation3.from_degrees(roll_deg, pitch_deg, yaw_deg),
        )

    @property
    def heading(self) -> float:
        return self.rotation.yaw

    @property
    def heading_degrees(self) -> float:
        return math.degrees(self.rotation.yaw)

    @property
    def translation(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z])

    def to_pose2(self) -> Pose2:
        """Drop elevation, roll and pitch."""
        return Pose2(self.x, self.y, self.rotation.yaw)

    def distance_to(self, other: Pose2 | Pose3) -> float:
        """3-D distance to a Pose3, planar distance to a Pose2."""
        if isinstance(other, Pose3):
            return math.dist((self.x, self.y, self.z), (other.x, other.y, other.z))
        return math.hypot(other.x - self.x, other.y - self.y)

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Map Nx3 points from this pose's local frame into the field frame."""
        pts = np.asarray(points, dtype=float).reshape(-1, 3)
        return pts @ self.rotation.matrix().T + self.translation

    def rvec_tvec(self) -> tuple[np.ndarray, np.ndarray]:
        """OpenCV-style (rvec, tvec) for this pose, each of shape (3,)."""
        rvec, _ = cv2.Rodrigues(self.rotation.matrix())
        return rvec.reshape(3), self.translation

    def isclose(self, other: Pose3, abs_tol: float = 1e-9) -> bool:
        return (
            isinstance(other, Pose3)
            and math.isclose(self.x, other.x, rel_tol=0.0, abs_tol=abs_tol)
            and math.isclose(self.y, other.y, rel_tol=0.0, abs_tol=abs_tol)
            and math.isclose(self.z, other.z, rel_tol=0.0, abs_tol=abs_tol)
            and self.rotation.isclose(other.rotation, abs_tol)
        )


# ---------------------------------------------------------------------------
# Alliance symmetry transforms
# ---------------------------------------------------------------------------

def mirror(pose: Pose2 | Pose3, field_length: float) -> Pose2 | Pose3:
    """Reflect *pose* about the field's center line (x = field_length / 2).

    x' = L - x, y' = y, heading' = pi - heading. For a Pose3 the facing
    direction is reflected and z stays up, which gives pitch' = pitch and
    roll' = -roll. Applying it twice returns the original pose.
    """
    if isinstance(pose, Pose3):
        r = pose.rotation
        return Pose3(
            field_length - pose.x,
            pose.y,
            pose.z,
            Rotation3(-r.roll, r.pitch, math.pi - r.yaw),
        )
    return Pose2(field_length - pose.x, pose.y, math.pi - pose.heading)


def flip_y(pose: Pose2 | Pose3, field_width: float) -> Pose2 | Pose3:
    """Reflect *pose* about the field's long axis (y = field_width / 2)."""
    if isinstance(pose, Pose3):
        r = pose.rotation
        return Pose3(pose.x, field_width - pose.y, pose.z, Rotation3(-r.roll, r.pitch, -r.yaw))
    return Pose2(pose.x, field_width - pose.y, -pose.heading)


def rotate(pose: Pose2 | Pose3, field_length: float, field_width: float) -> Pose2 | Pose3:
    """Rotate *pose* 180 degrees about the vertical axis through the field center.

    Equivalent to ``flip_y(mirror(pose))``: x' = L - x, y' = W - y,
    heading' = heading + pi.
    """
    return flip_y(mirror(pose, field_length), field_width)


class Symmetry(Enum):
    """How the red half of the field relates to the blue half."""

    MIRRORED = "mirrored"
    ROTATED = "rotated"

    @classmethod
    def parse(cls, value: Symmetry | str) -> Symmetry:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown field symmetry: {value!r}") from None

    def apply(self, pose: Pose2 | Pose3, field_length: float, field_width: float) -> Pose2 | Pose3:
        if self is Symmetry.ROTATED:
            return rotate(pose, field_length, field_width)
        return mirror(pose, field_length)
