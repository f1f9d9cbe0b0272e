"""Exceptions and warning categories raised by the distance-propagation code.

Fatal problems with the input (malformed chamfer weights, rasters whose
shapes disagree) are raised as exceptions before any raster work starts.
Problems confined to a single label are reported through :mod:`warnings`
so that the remaining labels of a batch are still processed.
"""

from __future__ import annotations


class DistanceMapError(Exception):
    """Base class for all errors raised by the distance-map code."""


class InvalidWeightSpec(DistanceMapError, ValueError):
    """The chamfer weight specification cannot produce a valid mask."""


class DimensionMismatch(DistanceMapError, ValueError):
    """Marker, label or mask dimensions disagree."""


class NoDescendingNeighbor(DistanceMapError, RuntimeError):
    """Path reconstruction reached a pixel without a lower same-label neighbour."""

    def __init__(self, label: int, position: tuple[int, ...]) -> None:
        self.label = label
        self.position = position
        super().__init__(
            f"Could not find a neighbour with smaller distance for label "
            f"{label} at position {position}"
        )


class RegionNotFoundWarning(UserWarning):
    """A label has no usable pixel or no reachable marker."""


class MaxIterationsExceededWarning(RuntimeWarning):
    """Geodesic propagation stopped before reaching a fixed point."""


class PathExtractionWarning(RuntimeWarning):
    """The longest geodesic path of a label could not be reconstructed."""
