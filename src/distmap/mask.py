"""Chamfer masks for raster-scan distance propagation.

A chamfer mask is an immutable, ordered set of weighted neighbour offsets.
Offsets are grouped into classes by the sorted absolute values of their
components, and every class shares one weight:

=====================  ============  =======================================
class                  2-D weight    3-D weight
=====================  ============  =======================================
orthogonal             ``a``         ``a`` -- ``(0, 0, 1)``
diagonal               ``b``         ``b`` -- face diagonal ``(0, 1, 1)``
cube diagonal          --            ``c`` -- ``(1, 1, 1)``
chess-knight           ``c``         ``e`` -- ``(1, 1, 2)``
=====================  ============  =======================================

2-D weight arrays are ``(a, b)`` (3x3 mask) or ``(a, b, c)`` (5x5 mask).
3-D weight arrays are ``(a, b)`` (3x3x3 mask, cube diagonal ``a + b``),
``(a, b, c)`` (3x3x3 mask) or ``(a, b, c, e)`` (5x5x5 mask).
"""

from __future__ import annotations

import enum
import itertools
import math
import numbers
import re
from dataclasses import dataclass, field
from typing import Iterator, Sequence, Union

from src.distmap.errors import DimensionMismatch, InvalidWeightSpec

Weight = Union[int, float]
Offset = tuple[int, ...]

_SQRT2 = math.sqrt(2.0)
_SQRT3 = math.sqrt(3.0)

# Preset used when no weight specification is given.
DEFAULT_PRESETS = {2: "chess-knight", 3: "borgefors"}

# Number of weights accepted for each raster dimensionality.
_ALLOWED_LENGTHS = {2: (2, 3), 3: (2, 3, 4)}


class MaskPreset(enum.Enum):
    """Named chamfer weight presets."""

    CHESSBOARD = "chessboard"
    CITY_BLOCK = "city-block"
    QUASI_EUCLIDEAN = "quasi-euclidean"
    BORGEFORS = "borgefors"
    WEIGHTS_23 = "weights-23"
    WEIGHTS_57 = "weights-57"
    CHESS_KNIGHT = "chess-knight"
    SVENSSON = "svensson"

    @classmethod
    def from_name(cls, name: str) -> MaskPreset:
        """Look up a preset by name, ignoring case, spaces, ``_`` and ``-``."""
        key = _normalize_name(name)
        for preset in cls:
            if key in (_normalize_name(preset.value), _normalize_name(preset.name)):
                return preset
        raise InvalidWeightSpec(
            f"Unknown chamfer mask preset {name!r}. "
            f"Expected one of {[p.value for p in cls]}"
        )

    def dimensions(self) -> tuple[int, ...]:
        """Raster dimensionalities for which the preset is defined."""
        return tuple(sorted(_PRESET_WEIGHTS[self]))

    def weights(self, ndim: int = 2, weight_type: str = "float") -> tuple[Weight, ...]:
        """Return the preset weights for *ndim*-D rasters.

        Parameters
        ----------
        ndim : int
            Raster dimensionality (2 or 3).
        weight_type : str
            ``"int"`` for the integer variant, ``"float"`` for the floating
            point one.

        Raises
        ------
        InvalidWeightSpec
            If the preset does not exist in *ndim* dimensions.
        """
        table = _PRESET_WEIGHTS[self]
        if ndim not in table:
            raise InvalidWeightSpec(
                f"Preset {self.value!r} is not defined for {ndim}-D rasters"
            )
        int_weights, float_weights = table[ndim]
        if weight_type == "int":
            return int_weights
        if weight_type == "float":
            if float_weights is None:
                return tuple(float(w) for w in int_weights)
            return float_weights
        raise ValueError(
            f"Unknown weight type '{weight_type}'. Expected 'int' or 'float'."
        )


# (integer weights, float weights or None when they are the same values)
_PRESET_WEIGHTS: dict[MaskPreset, dict[int, tuple[tuple[int, ...], tuple[float, ...] | None]]] = {
    MaskPreset.CHESSBOARD: {2: ((1, 1), None), 3: ((1, 1, 1), None)},
    MaskPreset.CITY_BLOCK: {2: ((1, 2), None), 3: ((1, 2, 3), None)},
    MaskPreset.QUASI_EUCLIDEAN: {
        2: ((10, 14), (1.0, _SQRT2)),
        3: ((10, 14, 17), (1.0, _SQRT2, _SQRT3)),
    },
    MaskPreset.BORGEFORS: {2: ((3, 4), None), 3: ((3, 4, 5), None)},
    MaskPreset.WEIGHTS_23: {2: ((2, 3), None)},
    MaskPreset.WEIGHTS_57: {2: ((5, 7), None)},
    MaskPreset.CHESS_KNIGHT: {2: ((5, 7, 11), None)},
    MaskPreset.SVENSSON: {3: ((3, 4, 5, 7), None)},
}


def _normalize_name(name: str) -> str:
    return re.sub(r"[\s_\-]", "", str(name).lower())


def _validate_weights(weights: Sequence[Weight], ndim: int) -> tuple[Weight, ...]:
    """Check a raw weight array and convert it to plain Python numbers."""
    if ndim not in _ALLOWED_LENGTHS:
        raise InvalidWeightSpec(
            f"Chamfer masks are defined for 2-D and 3-D rasters, not {ndim}-D"
        )
    try:
        values = tuple(weights)
    except TypeError as exc:
        raise InvalidWeightSpec(f"Weights must be a sequence, got {weights!r}") from exc

    allowed = _ALLOWED_LENGTHS[ndim]
    if len(values) not in allowed:
        raise InvalidWeightSpec(
            f"A {ndim}-D chamfer mask needs {' or '.join(map(str, allowed))} "
            f"weights, got {len(values)}"
        )

    for w in values:
        if isinstance(w, bool) or not isinstance(w, numbers.Real):
            raise InvalidWeightSpec(f"Weights must be real numbers, got {w!r}")
        if not math.isfinite(w) or w <= 0:
            raise InvalidWeightSpec(f"Weights must be finite and positive, got {w!r}")

    if all(isinstance(w, numbers.Integral) for w in values):
        values = tuple(int(w) for w in values)
    else:
        values = tuple(float(w) for w in values)

    if any(w2 < w1 for w1, w2 in zip(values, values[1:])):
        raise InvalidWeightSpec(
            f"Weights must not decrease with the offset norm, got {values}"
        )
    return values


def _offset_classes(weights: tuple[Weight, ...], ndim: int) -> dict[Offset, Weight]:
    """Map sorted absolute offsets to the weight of their class."""
    if ndim == 2:
        classes: dict[Offset, Weight] = {(0, 1): weights[0], (1, 1): weights[1]}
        if len(weights) == 3:
            classes[(1, 2)] = weights[2]
        return classes

    a, b = weights[0], weights[1]
    c = weights[2] if len(weights) > 2 else a + b
    classes = {(0, 0, 1): a, (0, 1, 1): b, (1, 1, 1): c}
    if len(weights) == 4:
        classes[(1, 1, 2)] = weights[3]
    return classes


@dataclass(frozen=True)
class ChamferMask:
    """Immutable set of weighted neighbour offsets.

    Offsets cover the full symmetric neighbourhood (centre excluded) and are
    stored in lexicographic order, which is also raster-scan order.  This
    order is the fixed enumeration order used to break ties during path
    reconstruction.

    Parameters
    ----------
    ndim : int
        Dimensionality of the rasters the mask applies to (2 or 3).
    weights : tuple
        Class weights, see the module docstring.  All-integer weights give
        an integer mask, anything else a floating point mask.
    normalized : bool
        Whether the weights have been divided by the orthogonal weight.
    """

    ndim: int
    weights: tuple[Weight, ...]
    normalized: bool = False
    offsets: tuple[Offset, ...] = field(init=False, repr=False, compare=False)
    offset_weights: tuple[Weight, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        weights = _validate_weights(self.weights, self.ndim)
        object.__setattr__(self, "weights", weights)

        classes = _offset_classes(weights, self.ndim)
        radius = max(max(key) for key in classes)

        offsets: list[Offset] = []
        offset_weights: list[Weight] = []
        for offset in itertools.product(range(-radius, radius + 1), repeat=self.ndim):
            key = tuple(sorted(abs(o) for o in offset))
            if key in classes:
                offsets.append(tuple(offset))
                offset_weights.append(classes[key])

        object.__setattr__(self, "offsets", tuple(offsets))
        object.__setattr__(self, "offset_weights", tuple(offset_weights))

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def from_weights(cls, weights: Sequence[Weight], ndim: int = 2) -> ChamferMask:
        """Build a mask from a raw weight array."""
        return cls(ndim=ndim, weights=tuple(weights))

    @classmethod
    def from_preset(
        cls,
        preset: MaskPreset | str,
        ndim: int = 2,
        weight_type: str = "float",
    ) -> ChamferMask:
        """Build a mask from a :class:`MaskPreset` or its name."""
        if not isinstance(preset, MaskPreset):
            preset = MaskPreset.from_name(preset)
        return cls(ndim=ndim, weights=preset.weights(ndim, weight_type))

    @classmethod
    def resolve(
        cls,
        spec: ChamferMask | MaskPreset | str | Sequence[Weight] | None,
        ndim: int = 2,
        weight_type: str = "float",
        normalize: bool = False,
    ) -> ChamferMask:
        """Turn any accepted weight specification into a mask.

        *spec* may be a mask (returned as is, after checking its
        dimensionality), a preset or preset name (built with *weight_type*),
        or a raw weight array (its own number type decides the weight type).
        ``None`` selects the chess-knight mask in 2-D and the Borgefors mask
        in 3-D.

        Raises
        ------
        DimensionMismatch
            If *spec* is a mask built for another dimensionality.
        InvalidWeightSpec
            If the specification cannot produce a valid mask.
        """
        if spec is None:
            spec = DEFAULT_PRESETS.get(ndim, "chessboard")

        if isinstance(spec, ChamferMask):
            if spec.ndim != ndim:
                raise DimensionMismatch(
                    f"Chamfer mask is {spec.ndim}-D but the raster is {ndim}-D"
                )
            mask = spec
        elif isinstance(spec, (MaskPreset, str)):
            mask = cls.from_preset(spec, ndim=ndim, weight_type=weight_type)
        else:
            mask = cls.from_weights(spec, ndim=ndim)

        if normalize and not mask.normalized:
            mask = mask.normalize()
        return mask

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def is_integer(self) -> bool:
        return all(isinstance(w, int) for w in self.weights)

    @property
    def weight_type(self) -> str:
        return "int" if self.is_integer else "float"

    @property
    def normalization_weight(self) -> Weight:
        """Orthogonal weight, used to express distances in pixel steps."""
        return self.weights[0]

    @property
    def radius(self) -> int:
        """Largest absolute offset component (1 for 3x3 masks, 2 for 5x5)."""
        return max(max(abs(o) for o in offset) for offset in self.offsets)

    def __len__(self) -> int:
        return len(self.offsets)

    def items(self) -> Iterator[tuple[Offset, Weight]]:
        """Iterate over ``(offset, weight)`` pairs in lexicographic order."""
        return zip(self.offsets, self.offset_weights)

    def forward_offsets(self) -> list[tuple[Offset, Weight]]:
        """Offsets of neighbours already visited by a forward raster scan."""
        return [(o, w) for o, w in self.items() if _first_nonzero(o) < 0]

    def backward_offsets(self) -> list[tuple[Offset, Weight]]:
        """Offsets of neighbours already visited by a backward raster scan."""
        return [(o, w) for o, w in self.items() if _first_nonzero(o) > 0]

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------
    def normalize(self) -> ChamferMask:
        """Return a float mask whose orthogonal weight is 1."""
        if self.normalized:
            return self
        a = float(self.weights[0])
        return ChamferMask(
            ndim=self.ndim,
            weights=tuple(w / a for w in self.weights),
            normalized=True,
        )

    def as_float(self) -> ChamferMask:
        if not self.is_integer:
            return self
        return ChamferMask(
            ndim=self.ndim,
            weights=tuple(float(w) for w in self.weights),
            normalized=self.normalized,
        )

    def as_integer(self) -> ChamferMask:
        """Integer variant; float weights are scaled by 10 and rounded."""
        if self.is_integer:
            return self
        return ChamferMask(
            ndim=self.ndim,
            weights=tuple(int(round(w * 10.0)) for w in self.weights),
        )


def _first_nonzero(offset: Offset) -> int:
    for o in offset:
        if o != 0:
            return o
    return 0
