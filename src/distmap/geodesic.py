"""Label-constrained (geodesic) chamfer distance transform.

Distances propagate from marker pixels, but a pixel only inherits a value
from neighbours carrying the same label.  For concave or winding regions a
single forward/backward pair is not enough, so the two scans alternate
until a full pair leaves every value unchanged.
"""

from __future__ import annotations

import heapq
import logging
import math
import warnings
from typing import Any, Sequence

import numpy as np

from src.distmap.errors import MaxIterationsExceededWarning
from src.distmap.mask import ChamferMask, MaskPreset, Weight
from src.distmap.raster import (
    ProgressCallback,
    RasterLayout,
    as_label_raster,
    check_same_shape,
)

logger = logging.getLogger(__name__)

METHODS = ("raster", "hybrid")


def _scan(
    dist: list,
    labels: list[int],
    indices: Sequence[int],
    neighbours: list[tuple[int, Weight]],
) -> bool:
    """Relax *indices* from same-label neighbours; True if any value dropped."""
    modified = False
    for i in indices:
        label = labels[i]
        current = dist[i]
        best = current
        for delta, weight in neighbours:
            if labels[i + delta] != label:
                continue
            value = dist[i + delta] + weight
            if value < best:
                best = value
        if best < current:
            dist[i] = best
            modified = True
    return modified


def _propagate_queue(
    dist: list,
    labels: list[int],
    indices: Sequence[int],
    neighbours: list[tuple[int, Weight]],
) -> int:
    """Finish propagation with a priority queue; return the number of updates."""
    queue = [(dist[i], i) for i in indices if dist[i] < math.inf]
    heapq.heapify(queue)

    updates = 0
    while queue:
        value, i = heapq.heappop(queue)
        if value > dist[i]:
            continue
        label = labels[i]
        for delta, weight in neighbours:
            j = i + delta
            if labels[j] != label:
                continue
            candidate = value + weight
            if candidate < dist[j]:
                dist[j] = candidate
                heapq.heappush(queue, (candidate, j))
                updates += 1
    return updates


def geodesic_distance_map(
    marker: Any,
    labels: Any,
    mask: ChamferMask | MaskPreset | str | Sequence[Weight] | None = None,
    weight_type: str = "float",
    max_iterations: int = 500,
    method: str = "raster",
    normalize: bool = False,
    progress: ProgressCallback | None = None,
) -> np.ndarray:
    """Geodesic distance from the marker pixels, constrained to each label.

    Parameters
    ----------
    marker : array_like
        Binary raster; non-zero pixels are seeds.  Seeds lying on label 0
        are ignored.
    labels : array_like
        Label raster with the same shape as *marker*.  Label 0 is outside
        every region.
    mask : ChamferMask, MaskPreset, str, sequence or None
        Weight specification, see :meth:`ChamferMask.resolve`.
    weight_type : str
        ``"int"`` or ``"float"``; only used when *mask* is a preset.
    max_iterations : int
        Upper bound on the number of forward/backward pass pairs
        (``method="raster"`` only).
    method : str
        ``"raster"`` alternates scans until convergence.  ``"hybrid"`` runs
        one pass pair then completes the propagation with a priority queue.
    normalize : bool
        Divide the result by the orthogonal weight.
    progress : callable, optional
        ``progress(status, None)`` called before every pass.

    Returns
    -------
    distance_map : np.ndarray
        float64 array.  Label-0 pixels hold ``NaN``; pixels with no marker
        reachable inside their region hold ``inf``.

    Raises
    ------
    DimensionMismatch
        If the rasters are not 2-D or 3-D, their shapes differ, or *mask*
        has another dimensionality.
    InvalidWeightSpec
        If *mask* is not a valid weight specification.
    ValueError
        If *method* is unknown or *max_iterations* is smaller than 1.
    """
    if method not in METHODS:
        raise ValueError(f"Unknown propagation method '{method}'. Expected one of {METHODS}.")
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")

    labels = as_label_raster(labels, name="labels")
    seeds = np.asarray(marker)
    check_same_shape(marker=seeds, labels=labels)
    mask = ChamferMask.resolve(mask, ndim=labels.ndim, weight_type=weight_type)

    layout = RasterLayout(labels.shape, mask.radius)
    flat_labels = layout.pad_labels(labels)
    flat_seeds = layout.pad(seeds != 0, False).ravel().tolist()
    order = layout.scan_order(flat_labels)

    dist = [math.inf] * layout.size
    n_seeds = 0
    for i in order:
        if flat_seeds[i]:
            dist[i] = 0
            n_seeds += 1

    forward = layout.neighbours(mask.forward_offsets())
    backward = layout.neighbours(mask.backward_offsets())
    reverse = order[::-1]

    logger.debug(
        "Geodesic distance map (%s): shape=%s, weights=%s, %d seeds, %d pixels",
        method, labels.shape, mask.weights, n_seeds, len(order),
    )

    if method == "hybrid":
        if progress is not None:
            progress("Forward scan", None)
        _scan(dist, flat_labels, order, forward)
        if progress is not None:
            progress("Backward scan", None)
        _scan(dist, flat_labels, reverse, backward)
        if progress is not None:
            progress("Queue propagation", None)
        updates = _propagate_queue(dist, flat_labels, order, layout.neighbours(mask.items()))
        logger.debug("Queue propagation updated %d pixels", updates)
    else:
        for iteration in range(1, max_iterations + 1):
            if progress is not None:
                progress(f"Forward iteration {iteration}", None)
            modified = _scan(dist, flat_labels, order, forward)
            if progress is not None:
                progress(f"Backward iteration {iteration}", None)
            modified |= _scan(dist, flat_labels, reverse, backward)
            if not modified:
                logger.debug("Geodesic propagation converged after %d iterations", iteration)
                break
        else:
            logger.warning(
                "Geodesic propagation did not converge within %d iterations",
                max_iterations,
            )
            warnings.warn(
                f"Geodesic propagation did not converge within {max_iterations} "
                f"iterations; returning a non-converged distance map",
                MaxIterationsExceededWarning,
                stacklevel=2,
            )

    result = layout.unpad(dist)
    result[labels == 0] = np.nan
    if normalize:
        result /= float(mask.normalization_weight)
    return result
