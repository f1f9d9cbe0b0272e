"""Per-label bookkeeping shared by the diameter phases.

Every phase of the diameter estimation works on the whole label raster at
once and then needs one extremum per label.  The helpers here enumerate
labels, extract per-label maxima in a single vectorised pass and turn
per-label positions back into marker rasters.
"""

from __future__ import annotations

import logging
import warnings
from typing import Iterable, Mapping, NamedTuple, Sequence

import numpy as np
from skimage import measure

from src.distmap.errors import RegionNotFoundWarning
from src.distmap.raster import as_label_raster, check_same_shape

logger = logging.getLogger(__name__)


class PositionValuePair(NamedTuple):
    """Best value found for one label and where it was found."""

    position: tuple[int, ...]
    value: float

    @property
    def is_defined(self) -> bool:
        return all(p >= 0 for p in self.position)


def undefined_position(ndim: int) -> tuple[int, ...]:
    return (-1,) * ndim


def find_all_labels(labels: np.ndarray) -> list[int]:
    """Sorted list of the distinct positive labels of a raster."""
    values = np.unique(np.asarray(labels))
    return [int(v) for v in values if v > 0]


def binarize(labels: np.ndarray) -> np.ndarray:
    """Collapse every region to foreground 1, background stays 0."""
    return (np.asarray(labels) > 0).astype(np.uint8)


def label_binary_image(binary: np.ndarray, connectivity: int | None = None) -> np.ndarray:
    """Label the connected components of a binary raster.

    Parameters
    ----------
    binary : np.ndarray
        2-D or 3-D raster; non-zero pixels are foreground.
    connectivity : int or None
        Maximum number of orthogonal hops to consider a pixel a neighbour
        (``skimage.measure.label`` convention).  ``None`` means full
        connectivity (8 in 2-D, 26 in 3-D).

    Returns
    -------
    labels : np.ndarray
        int64 label raster, components numbered from 1 in raster order.
    """
    arr = np.asarray(binary) != 0
    labelled = measure.label(arr, background=0, connectivity=connectivity)
    return labelled.astype(np.int64)


def max_value_positions(
    values: np.ndarray,
    labels: np.ndarray,
    label_list: Sequence[int] | None = None,
) -> dict[int, PositionValuePair]:
    """Locate the maximum of *values* inside every label.

    Ties are broken by raster-scan order: the first pixel reaching the
    maximum wins.  ``inf`` counts as a regular (largest) value.

    Parameters
    ----------
    values : np.ndarray
        Scalar raster, e.g. a distance map.
    labels : np.ndarray
        Label raster with the same shape.
    label_list : sequence of int, optional
        Labels to report, in output order.  Defaults to all labels present.

    Returns
    -------
    extrema : dict
        Mapping label -> :class:`PositionValuePair`.  A requested label with
        no pixel gets the undefined position ``(-1, ...)`` and value ``NaN``,
        and a :class:`RegionNotFoundWarning` is emitted.
    """
    labels = as_label_raster(labels)
    values = np.asarray(values, dtype=np.float64)
    check_same_shape(values=values, labels=labels)
    if label_list is None:
        label_list = find_all_labels(labels)

    flat_labels = labels.ravel()
    flat_values = values.ravel()
    idx = np.flatnonzero(flat_labels)
    lab = flat_labels[idx]
    val = flat_values[idx]

    # sort by label, then decreasing value, then raster order
    order = np.lexsort((idx, -val, lab))
    sorted_labels = lab[order]
    unique_labels, first = np.unique(sorted_labels, return_index=True)
    best = {
        int(label): (int(idx[order[k]]), float(val[order[k]]))
        for label, k in zip(unique_labels, first)
    }

    extrema: dict[int, PositionValuePair] = {}
    for label in label_list:
        label = int(label)
        if label not in best:
            logger.warning("Label %d has no pixel in the raster", label)
            warnings.warn(
                f"Label {label} not found in the label raster",
                RegionNotFoundWarning,
                stacklevel=2,
            )
            extrema[label] = PositionValuePair(undefined_position(labels.ndim), float("nan"))
            continue
        flat_index, value = best[label]
        position = tuple(int(p) for p in np.unravel_index(flat_index, labels.shape))
        extrema[label] = PositionValuePair(position, value)
    return extrema


def markers_from_positions(
    shape: Sequence[int],
    positions: Mapping[int, PositionValuePair | Sequence[int]] | Iterable[Sequence[int]],
) -> np.ndarray:
    """Binary marker raster with one seed per defined position.

    *positions* may be a mapping label -> position (or
    :class:`PositionValuePair`) or a plain iterable of positions.
    Undefined positions (any negative coordinate) are skipped.
    """
    marker = np.zeros(tuple(shape), dtype=bool)
    items = positions.values() if isinstance(positions, Mapping) else positions
    for item in items:
        position = item.position if isinstance(item, PositionValuePair) else item
        position = tuple(int(p) for p in position)
        if len(position) != marker.ndim or any(p < 0 for p in position):
            continue
        marker[position] = True
    return marker
