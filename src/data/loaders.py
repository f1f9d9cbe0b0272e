"""Label image loading for geodesic measurements.

Supports synthetic phantoms, NumPy arrays, NIfTI volumes and TIFF/PNG
images.  Each loader returns an int64 label raster together with a metadata
dictionary.  Binary inputs can be split into connected components on load.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from src.geodesic.labels import find_all_labels, label_binary_image

logger = logging.getLogger(__name__)

_IMAGE_SUFFIXES = (".tif", ".tiff", ".png", ".bmp", ".pgm")


def _to_labels(array: np.ndarray, binary: bool, connectivity: int | None) -> np.ndarray:
    """Convert raw pixel data to an int64 label raster."""
    array = np.squeeze(np.asarray(array))
    if array.ndim not in (2, 3):
        raise ValueError(f"Expected a 2-D or 3-D image, got shape {array.shape}")
    if binary:
        return label_binary_image(array, connectivity=connectivity)
    if np.issubdtype(array.dtype, np.floating):
        if not np.array_equal(array, np.round(array)):
            raise ValueError(
                "Image holds non-integer values; pass binary=True to label it"
            )
    labels = array.astype(np.int64)
    if labels.size and labels.min() < 0:
        raise ValueError("Label images must not contain negative values")
    return labels


def _load_phantom() -> tuple[np.ndarray, dict]:
    """Generate a synthetic label phantom and return labels + metadata."""
    from src.data.phantom import create_label_phantom

    result = create_label_phantom()
    metadata = dict(result["metadata"])
    metadata["source"] = "synthetic_phantom"
    return result["labels"].astype(np.int64), metadata


def _load_nifti(path: Path) -> tuple[np.ndarray, dict]:
    """Load a NIfTI (.nii / .nii.gz) file via nibabel."""
    try:
        import nibabel as nib
    except ImportError as exc:
        raise ImportError(
            "nibabel is required to load NIfTI files. "
            "Install it with:  pip install nibabel"
        ) from exc

    img = nib.load(str(path))
    data = np.asarray(img.dataobj)
    metadata: dict = {
        "source": "nifti",
        "path": str(path),
        "affine": img.affine.tolist(),
    }
    header = img.header
    if hasattr(header, "get_zooms"):
        metadata["voxel_size"] = [float(z) for z in header.get_zooms()]
    return data, metadata


def _load_image(path: Path) -> tuple[np.ndarray, dict]:
    """Load a TIFF / PNG image via scikit-image."""
    from skimage import io

    data = io.imread(str(path))
    if data.ndim == 3 and data.shape[-1] in (3, 4) and path.suffix.lower() != ".tif":
        # RGB(A) rasters: keep the first channel
        data = data[..., 0]
    return data, {"source": "image", "path": str(path)}


def _load_numpy(path: Path) -> tuple[np.ndarray, dict]:
    """Load a raster from a ``.npy`` file."""
    return np.load(str(path)), {"source": "numpy", "path": str(path)}


def load_label_image(
    path: str | Path | None = None,
    binary: bool = False,
    connectivity: int | None = None,
) -> tuple[np.ndarray, dict]:
    """Load a 2-D or 3-D label image from disk or generate a phantom.

    The format is auto-detected from the file extension:

    * ``None`` -- generate a synthetic label phantom.
    * ``.nii`` / ``.nii.gz`` -- NIfTI via *nibabel*.
    * ``.tif`` / ``.tiff`` / ``.png`` / ``.bmp`` / ``.pgm`` -- via
      *scikit-image*.
    * ``.npy`` -- NumPy binary file.

    Parameters
    ----------
    path : str | Path | None
        Path to the data source, or ``None`` for a synthetic phantom.
    binary : bool
        Treat the image as binary (non-zero is foreground) and label its
        connected components.
    connectivity : int or None
        Component connectivity when *binary* is set
        (``skimage.measure.label`` convention, ``None`` for full).

    Returns
    -------
    labels : np.ndarray
        int64 label raster; 0 is background.
    metadata : dict
        Metadata about the loaded image, including ``shape`` and ``labels``.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the format is unsupported or the data is not a label image.
    """
    if path is None:
        labels, metadata = _load_phantom()
        if binary:
            labels = label_binary_image(labels, connectivity=connectivity)
    else:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"No such file: {path}")

        suffixes = "".join(path.suffixes).lower()
        if suffixes.endswith(".nii.gz") or suffixes.endswith(".nii"):
            data, metadata = _load_nifti(path)
        elif suffixes.endswith(".npy"):
            data, metadata = _load_numpy(path)
        elif path.suffix.lower() in _IMAGE_SUFFIXES:
            data, metadata = _load_image(path)
        else:
            raise ValueError(
                f"Unsupported file format: {path}. "
                f"Expected .nii, .nii.gz, .npy or one of {_IMAGE_SUFFIXES}"
            )
        labels = _to_labels(data, binary, connectivity)

    metadata["shape"] = tuple(labels.shape)
    metadata["labels"] = find_all_labels(labels)
    logger.info(
        "Loaded %s label image of shape %s with %d labels",
        metadata["source"], labels.shape, len(metadata["labels"]),
    )
    return labels, metadata
