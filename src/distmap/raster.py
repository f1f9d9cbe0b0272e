"""Raster validation and the padded flat layout used by the scan loops.

The propagation loops walk rasters pixel by pixel in scan order.  To keep
the inner loops free of bounds checks, rasters are copied into flat Python
lists padded by the mask radius on every side.  Padding pixels carry the
label :data:`OUTSIDE` so they never match a real label and are never
updated.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

import numpy as np

from src.distmap.errors import DimensionMismatch

# Label given to padding pixels; real labels are >= 0.
OUTSIDE = -1

# progress(status, fraction); fraction is None when no estimate exists.
ProgressCallback = Callable[[str, Optional[float]], None]


def as_label_raster(labels: Any, name: str = "labels") -> np.ndarray:
    """Validate a label raster and return it as an ``int64`` array.

    Boolean rasters are accepted and become labels 0/1.

    Raises
    ------
    DimensionMismatch
        If the raster is not 2-D or 3-D.
    ValueError
        If the raster holds non-integer or negative values.
    """
    arr = np.asarray(labels)
    if arr.ndim not in (2, 3):
        raise DimensionMismatch(f"{name} must be a 2-D or 3-D raster, got {arr.ndim}-D")

    if arr.dtype == bool:
        return arr.astype(np.int64)

    if not np.issubdtype(arr.dtype, np.integer):
        if not np.issubdtype(arr.dtype, np.floating) or not np.all(np.isfinite(arr)):
            raise ValueError(f"{name} must hold integer values, got dtype {arr.dtype}")
        if not np.array_equal(arr, np.round(arr)):
            raise ValueError(f"{name} must hold integer values")

    arr = arr.astype(np.int64, copy=False)
    if arr.size and arr.min() < 0:
        raise ValueError(f"{name} must not contain negative labels")
    return arr


def check_same_shape(**rasters: np.ndarray) -> tuple[int, ...]:
    """Ensure all keyword rasters share one shape and return it.

    Raises
    ------
    DimensionMismatch
        If any two shapes differ.
    """
    shapes = {name: tuple(np.shape(r)) for name, r in rasters.items()}
    unique = set(shapes.values())
    if len(unique) > 1:
        detail = ", ".join(f"{name}={shape}" for name, shape in shapes.items())
        raise DimensionMismatch(f"Raster shapes disagree: {detail}")
    return unique.pop()


class RasterLayout:
    """Flat, padded view of a raster shape.

    Parameters
    ----------
    shape : tuple of int
        Shape of the unpadded raster.
    radius : int
        Padding width on every side; must be at least the mask radius.
    """

    def __init__(self, shape: Sequence[int], radius: int) -> None:
        self.shape = tuple(int(s) for s in shape)
        self.radius = int(radius)
        self.padded_shape = tuple(s + 2 * self.radius for s in self.shape)

        strides = []
        step = 1
        for s in reversed(self.padded_shape):
            strides.append(step)
            step *= s
        self.strides = tuple(reversed(strides))

        self._interior = tuple(
            slice(self.radius, self.radius + s) for s in self.shape
        )

    @property
    def size(self) -> int:
        return int(np.prod(self.padded_shape))

    def pad(self, array: np.ndarray, fill: Any) -> np.ndarray:
        padded = np.full(self.padded_shape, fill, dtype=np.asarray(array).dtype)
        padded[self._interior] = array
        return padded

    def pad_labels(self, labels: np.ndarray) -> list[int]:
        """Flat list of labels with :data:`OUTSIDE` in the padding."""
        return self.pad(labels, OUTSIDE).ravel().tolist()

    def unpad(self, values: Sequence[float]) -> np.ndarray:
        """Crop a flat list of values back to the raster shape as float64."""
        arr = np.asarray(values, dtype=np.float64).reshape(self.padded_shape)
        return np.ascontiguousarray(arr[self._interior])

    def deltas(self, offsets: Sequence[Sequence[int]]) -> list[int]:
        """Flat index increments of the given offsets."""
        return [
            int(sum(o * s for o, s in zip(offset, self.strides)))
            for offset in offsets
        ]

    def neighbours(self, pairs: Sequence[tuple[Sequence[int], Any]]) -> list[tuple[int, Any]]:
        """Pair the flat increment of each offset with its weight."""
        pairs = list(pairs)
        return list(zip(self.deltas([o for o, _ in pairs]), [w for _, w in pairs]))

    def flat_index(self, position: Sequence[int]) -> int:
        return int(sum((p + self.radius) * s for p, s in zip(position, self.strides)))

    def position(self, index: int) -> tuple[int, ...]:
        padded = np.unravel_index(index, self.padded_shape)
        return tuple(int(p) - self.radius for p in padded)

    def scan_order(self, flat_labels: Sequence[int]) -> list[int]:
        """Flat indices of labelled pixels (label > 0) in raster-scan order."""
        return np.flatnonzero(np.asarray(flat_labels) > 0).tolist()
