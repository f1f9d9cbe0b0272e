"""Longest geodesic path reconstruction by steepest descent.

Starting from the far extremity of a region, the walk repeatedly steps to
the same-label neighbour with the strictly smallest distance value until
it reaches the seed of the distance map.  Neighbours are visited in the
mask's fixed offset order, so ties always resolve to the first offset.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from src.distmap.errors import NoDescendingNeighbor
from src.distmap.mask import ChamferMask, MaskPreset, Weight
from src.distmap.raster import as_label_raster, check_same_shape

logger = logging.getLogger(__name__)

Position = tuple[int, ...]


def _in_bounds(position: Position, shape: tuple[int, ...]) -> bool:
    return all(0 <= p < s for p, s in zip(position, shape))


def _descend(
    distance_map: np.ndarray,
    labels: np.ndarray,
    position: Position,
    offsets: Sequence[tuple[int, ...]],
) -> Position | None:
    """Same-label neighbour with the smallest value below *position*'s."""
    label = labels[position]
    best_value = distance_map[position]
    best: Position | None = None
    for offset in offsets:
        neighbour = tuple(p + o for p, o in zip(position, offset))
        if not _in_bounds(neighbour, labels.shape) or labels[neighbour] != label:
            continue
        value = distance_map[neighbour]
        # strict comparison keeps the first offset on ties
        if value < best_value:
            best_value = value
            best = neighbour
    return best


def longest_geodesic_path(
    distance_map: np.ndarray,
    labels: np.ndarray,
    start: Sequence[int],
    end: Sequence[int],
    mask: ChamferMask | MaskPreset | str | Sequence[Weight] | None = None,
    weight_type: str = "float",
) -> list[Position]:
    """Walk down a geodesic distance map from *start* to *end*.

    Parameters
    ----------
    distance_map : np.ndarray
        Converged geodesic distance map whose only zero inside the region
        of *start* is at *end*.
    labels : np.ndarray
        Label raster the distance map was computed on.
    start : sequence of int
        Far extremity; the walk starts here.
    end : sequence of int
        Seed of the distance map; the walk stops here.
    mask : ChamferMask, MaskPreset, str, sequence or None
        Mask whose full neighbourhood defines the allowed steps.  Should be
        the mask used to compute *distance_map*.
    weight_type : str
        ``"int"`` or ``"float"``; only used when *mask* is a preset.

    Returns
    -------
    path : list of tuple
        Positions from *start* to *end* inclusive.  Empty when *start* has
        an infinite (or undefined) distance.

    Raises
    ------
    NoDescendingNeighbor
        If the walk reaches a pixel other than *end* with no strictly
        smaller same-label neighbour.
    """
    labels = as_label_raster(labels)
    distance_map = np.asarray(distance_map, dtype=np.float64)
    check_same_shape(distance_map=distance_map, labels=labels)
    mask = ChamferMask.resolve(mask, ndim=labels.ndim, weight_type=weight_type)

    start = tuple(int(p) for p in start)
    end = tuple(int(p) for p in end)
    if not _in_bounds(start, labels.shape) or not math.isfinite(distance_map[start]):
        return []

    label = int(labels[start])
    path = [start]
    current = start
    while current != end:
        nxt = _descend(distance_map, labels, current, mask.offsets)
        if nxt is None:
            raise NoDescendingNeighbor(label, current)
        path.append(nxt)
        current = nxt

    logger.debug("Label %d: geodesic path of %d points", label, len(path))
    return path


def is_valid_path(
    path: Sequence[Sequence[int]],
    distance_map: np.ndarray,
    labels: np.ndarray,
    mask: ChamferMask | MaskPreset | str | Sequence[Weight] | None = None,
    start: Sequence[int] | None = None,
    end: Sequence[int] | None = None,
) -> bool:
    """Check that *path* is a descending walk inside a single region.

    The path must be non-empty, stay within the label of its first point,
    have strictly decreasing distance values, and move by a mask offset at
    every step.  When given, *start* and *end* must match its endpoints.
    """
    if len(path) == 0:
        return False
    labels = np.asarray(labels)
    distance_map = np.asarray(distance_map, dtype=np.float64)
    mask = ChamferMask.resolve(mask, ndim=labels.ndim)
    allowed = set(mask.offsets)

    points = [tuple(int(p) for p in pt) for pt in path]
    if start is not None and points[0] != tuple(start):
        return False
    if end is not None and points[-1] != tuple(end):
        return False
    if not all(_in_bounds(pt, labels.shape) for pt in points):
        return False

    label = labels[points[0]]
    if label == 0 or any(labels[pt] != label for pt in points):
        return False

    for a, b in zip(points, points[1:]):
        if tuple(q - p for p, q in zip(a, b)) not in allowed:
            return False
        if not distance_map[b] < distance_map[a]:
            return False
    return True
