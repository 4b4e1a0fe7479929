"""Locate and read field layout spec files.

A spec is a plain JSON document with lengths authored in inches (see
``data/2026-rebuilt.json`` for the full shape). Packaged specs live next to
this module; a different file can be supplied explicitly or through the
FIELD_LAYOUT_SPEC environment variable.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from . import constants

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"


def load_spec(path: Path) -> dict[str, Any]:
    """Load a layout spec from *path* without interpreting it."""
    with open(path, "r", encoding="utf-8") as f:
        spec = json.load(f)
    logger.debug("Loaded layout spec from %s", path)
    return spec


def available_layouts() -> list[str]:
    """Names of the packaged layout specs."""
    return sorted(p.stem for p in DATA_DIR.glob("*.json"))


def packaged_spec_path(name: str) -> Path:
    """Path of the packaged spec called *name*."""
    path = DATA_DIR / f"{name}.json"
    if not path.exists():
        raise FileNotFoundError(
            f"No packaged field layout named {name!r}. "
            f"Available: {', '.join(available_layouts()) or 'none'}"
        )
    return path


def resolve_spec_path(explicit: Path | None, layout_name: str = constants.DEFAULT_LAYOUT) -> Path:
    """Resolve the spec file path.

    Priority: explicit argument > $FIELD_LAYOUT_SPEC > packaged <layout_name>.json.
    """
    if explicit is not None:
        return explicit.resolve()

    from_env = os.environ.get(constants.SPEC_ENV_VAR)
    if from_env:
        candidate = Path(from_env).expanduser()
        if not candidate.exists():
            raise FileNotFoundError(
                f"{constants.SPEC_ENV_VAR} points at {candidate}, which does not exist. "
                "Unset it or pass --spec."
            )
        return candidate.resolve()

    return packaged_spec_path(layout_name)
