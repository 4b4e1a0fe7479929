"""Exceptions raised while building or querying a field layout."""


class LayoutError(Exception):
    """Base class for field layout errors."""


class ValidationError(LayoutError, ValueError):
    """The layout spec is malformed or violates a layout invariant.

    Raised only by ``layout.build``.
    """


class NotFoundError(LayoutError, LookupError):
    """Lookup by an unknown fiducial id, element name or pose label."""
