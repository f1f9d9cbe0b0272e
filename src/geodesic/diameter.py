"""Geodesic diameter of every region of a label raster.

The estimation runs three propagation phases over the whole raster, so
all labels are processed together:

1. **Centers** -- chamfer distance transform of the (binarised) labels.
   The per-label maximum gives the inscribed-circle center and radius.
2. **First extremity** -- geodesic distance from the centers.  The
   per-label maximum is the first geodesic extremity.
3. **Second extremity** -- geodesic distance from the first extremities.
   The per-label maximum is the second extremity and, plus one pixel, the
   geodesic diameter.

An optional fourth phase walks down the last distance map to recover the
longest geodesic path of every region.
"""

from __future__ import annotations

import logging
import math
import time
import warnings
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np

from src.distmap.chamfer import chamfer_distance_map
from src.distmap.errors import (
    NoDescendingNeighbor,
    PathExtractionWarning,
    RegionNotFoundWarning,
)
from src.distmap.geodesic import METHODS, geodesic_distance_map
from src.distmap.mask import ChamferMask, MaskPreset, Weight
from src.distmap.raster import ProgressCallback, as_label_raster
from src.geodesic.labels import (
    PositionValuePair,
    binarize,
    find_all_labels,
    markers_from_positions,
    max_value_positions,
)
from src.geodesic.path import longest_geodesic_path

logger = logging.getLogger(__name__)

Position = tuple[int, ...]


@dataclass
class GeodesicResult:
    """Geodesic measures of one region, in orthogonal pixel steps."""

    label: int
    diameter: float
    inner_radius: float
    center: Position
    first_extremity: Position
    second_extremity: Position
    path: Optional[list[Position]] = None

    @property
    def elongation(self) -> float:
        """``diameter / (2 * inner_radius)``, never below 1."""
        if math.isnan(self.inner_radius) or self.inner_radius == 0:
            return math.nan
        ratio = self.diameter / (2.0 * self.inner_radius)
        if math.isnan(ratio):
            return math.nan
        return max(ratio, 1.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "diameter": self.diameter,
            "inner_radius": self.inner_radius,
            "elongation": self.elongation,
            "center": list(self.center),
            "first_extremity": list(self.first_extremity),
            "second_extremity": list(self.second_extremity),
            "path": None if self.path is None else [list(p) for p in self.path],
        }


class GeodesicDiameterEstimator:
    """Estimate geodesic diameters, inscribed radii and extremities.

    Parameters
    ----------
    mask : ChamferMask, MaskPreset, str, sequence or None
        Chamfer weights, resolved against the raster dimensionality at
        analysis time.  ``None`` selects the chess-knight mask in 2-D and
        the Borgefors mask in 3-D.
    weight_type : str
        ``"int"`` or ``"float"`` variant of a preset mask.
    max_iterations : int
        Safety bound of the geodesic propagation loop.
    method : str
        ``"raster"`` (alternating scans) or ``"hybrid"`` (one scan pair then
        a priority queue).
    label_aware_centers : bool
        Measure each region to its own boundary in the center phase instead
        of using the binarised raster, so touching regions get separate
        inscribed circles.
    """

    def __init__(
        self,
        mask: ChamferMask | MaskPreset | str | Sequence[Weight] | None = None,
        weight_type: str = "float",
        max_iterations: int = 500,
        method: str = "raster",
        label_aware_centers: bool = False,
    ) -> None:
        if method not in METHODS:
            raise ValueError(
                f"Unknown propagation method '{method}'. Expected one of {METHODS}."
            )
        if weight_type not in ("int", "float"):
            raise ValueError(
                f"Unknown weight type '{weight_type}'. Expected 'int' or 'float'."
            )
        self.mask = mask
        self.weight_type = weight_type
        self.max_iterations = max_iterations
        self.method = method
        self.label_aware_centers = label_aware_centers

    def resolve_mask(self, ndim: int) -> ChamferMask:
        """The chamfer mask used for *ndim*-D rasters."""
        return ChamferMask.resolve(self.mask, ndim=ndim, weight_type=self.weight_type)

    def analyze(
        self,
        labels: Any,
        compute_paths: bool = False,
        progress: ProgressCallback | None = None,
    ) -> tuple[dict[int, GeodesicResult], np.ndarray]:
        """Run all phases on a label raster.

        Parameters
        ----------
        labels : array_like
            2-D or 3-D label raster; 0 is background.
        compute_paths : bool
            Also reconstruct the longest geodesic path of every region.
        progress : callable, optional
            ``progress(status, fraction)``; called at every phase with the
            completed fraction, and with ``fraction=None`` at every
            transform pass.

        Returns
        -------
        results : dict
            Mapping label -> :class:`GeodesicResult`, sorted by label.
        distance_map : np.ndarray
            Geodesic distance map of the last phase, in raw mask units
            (``NaN`` on background).
        """
        labels = as_label_raster(labels)
        label_list = find_all_labels(labels)
        pass_progress = _pass_reporter(progress)
        mask = self.resolve_mask(labels.ndim)
        scale = float(mask.normalization_weight)
        n_phases = 4 if compute_paths else 3

        logger.info(
            "Geodesic diameter: %d labels, shape=%s, weights=%s, method=%s",
            len(label_list), labels.shape, mask.weights, self.method,
        )
        t0 = time.perf_counter()

        # ------------------------------------------------------------------
        # 1. Inscribed-circle centers
        # ------------------------------------------------------------------
        _report(progress, "Compute centers", 0.0)
        image = labels if self.label_aware_centers else binarize(labels)
        distance = chamfer_distance_map(image, mask, progress=pass_progress)
        centers = max_value_positions(distance, labels, label_list)

        # ------------------------------------------------------------------
        # 2. First geodesic extremity
        # ------------------------------------------------------------------
        _report(progress, "Propagate from centers", 1.0 / n_phases)
        distance = self._propagate(labels, centers, mask, pass_progress)
        first = max_value_positions(distance, labels, label_list)

        # ------------------------------------------------------------------
        # 3. Second geodesic extremity and diameter
        # ------------------------------------------------------------------
        _report(progress, "Propagate from first extremities", 2.0 / n_phases)
        distance = self._propagate(labels, first, mask, pass_progress)
        second = max_value_positions(distance, labels, label_list)

        results: dict[int, GeodesicResult] = {}
        for label in label_list:
            results[label] = GeodesicResult(
                label=label,
                diameter=second[label].value / scale + 1.0,
                inner_radius=centers[label].value / scale,
                center=centers[label].position,
                first_extremity=first[label].position,
                second_extremity=second[label].position,
            )
            if math.isinf(results[label].diameter):
                logger.warning("Label %d: marker unreachable, infinite diameter", label)
                warnings.warn(
                    f"Label {label} is not connected; its geodesic diameter is infinite",
                    RegionNotFoundWarning,
                    stacklevel=2,
                )

        # ------------------------------------------------------------------
        # 4. Longest geodesic paths
        # ------------------------------------------------------------------
        if compute_paths:
            _report(progress, "Extract paths", 3.0 / n_phases)
            for label, result in results.items():
                result.path = _extract_path(distance, labels, result, mask)

        _report(progress, "Done", 1.0)
        logger.info(
            "Geodesic diameter finished in %.2f s", time.perf_counter() - t0
        )
        return results, distance

    def _propagate(
        self,
        labels: np.ndarray,
        seeds: dict[int, PositionValuePair],
        mask: ChamferMask,
        progress: ProgressCallback | None,
    ) -> np.ndarray:
        marker = markers_from_positions(labels.shape, seeds)
        return geodesic_distance_map(
            marker,
            labels,
            mask,
            max_iterations=self.max_iterations,
            method=self.method,
            progress=progress,
        )


def _pass_reporter(progress: ProgressCallback | None) -> ProgressCallback | None:
    """Forward per-pass statuses without a fraction of their own."""
    if progress is None:
        return None
    return lambda status, _fraction: progress(status, None)


def _report(progress: ProgressCallback | None, status: str, fraction: float) -> None:
    logger.debug("%s (%.0f%%)", status, 100.0 * fraction)
    if progress is not None:
        progress(status, fraction)


def _extract_path(
    distance: np.ndarray,
    labels: np.ndarray,
    result: GeodesicResult,
    mask: ChamferMask,
) -> list[Position] | None:
    """Longest path of one region; None when the walk gets stuck."""
    if not math.isfinite(result.diameter):
        return []
    try:
        return longest_geodesic_path(
            distance,
            labels,
            result.second_extremity,
            result.first_extremity,
            mask,
        )
    except NoDescendingNeighbor as exc:
        logger.warning("Label %d: %s", result.label, exc)
        warnings.warn(str(exc), PathExtractionWarning, stacklevel=3)
        return None


# ---------------------------------------------------------------------------
# Functional shortcuts
# ---------------------------------------------------------------------------
def geodesic_diameter(
    labels: Any,
    mask: ChamferMask | MaskPreset | str | Sequence[Weight] | None = None,
    compute_paths: bool = False,
    **kwargs: Any,
) -> dict[int, GeodesicResult]:
    """Per-label :class:`GeodesicResult` of a label raster.

    Extra keyword arguments are passed to :class:`GeodesicDiameterEstimator`.
    """
    estimator = GeodesicDiameterEstimator(mask=mask, **kwargs)
    results, _ = estimator.analyze(labels, compute_paths=compute_paths)
    return results


def longest_geodesic_paths(
    labels: Any,
    mask: ChamferMask | MaskPreset | str | Sequence[Weight] | None = None,
    **kwargs: Any,
) -> dict[int, list[Position]]:
    """Longest geodesic path of every region.

    Regions whose path cannot be computed map to an empty list.
    """
    results = geodesic_diameter(labels, mask=mask, compute_paths=True, **kwargs)
    return {label: list(r.path or []) for label, r in results.items()}
