"""Field layout constants.

Values sourced from the 2026 REBUILT Game Manual and Field Dimension Drawings.
"""

# Length conversion (exact, by definition of the inch)
INCHES_TO_METERS = 0.0254

# Supported authoring units -> meters
UNIT_SCALE = {
    "inches": INCHES_TO_METERS,
    "meters": 1.0,
}
DEFAULT_UNITS = "inches"

# Authored red poses must match the symmetry transform within these bounds
SYMMETRY_TOLERANCE_M = 1e-3
SYMMETRY_TOLERANCE_RAD = 1e-3

# Packaged layouts (field_layout/data/<name>.json)
DEFAULT_LAYOUT = "2026-rebuilt"
SPEC_ENV_VAR = "FIELD_LAYOUT_SPEC"

# AprilTag defaults — Manual 5.11
FIDUCIAL_FAMILY = "tag36h11"
FIDUCIAL_COUNT = 32
FIDUCIAL_SIZE_IN = 8.125
