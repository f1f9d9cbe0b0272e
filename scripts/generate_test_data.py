#!/usr/bin/env python3
"""Generate synthetic label datasets for the geodesic pipeline.

Creates several .npy label images with varying layouts plus the 3-D
cube-edge graph, so the pipeline can be run against known geometry.

Usage:
    python -m scripts.generate_test_data
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import numpy as np

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from src.data.phantom import create_label_phantom, cube_edge_graph

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
NPY_DIR = DATA_DIR / "numpy"


DATASETS = [
    {
        "name": "all_shapes",
        "params": {"shape": (96, 128), "seed": 100},
        "description": "One region of every phantom shape",
    },
    {
        "name": "winding_regions",
        "params": {"shape": (64, 192), "shapes": ("meander", "ring", "l_shape"), "seed": 200},
        "description": "Concave and holed regions needing many propagation passes",
    },
    {
        "name": "blobs",
        "params": {"shape": (128, 128), "shapes": ("blob",) * 4, "seed": 300},
        "description": "Random smooth blobs",
    },
    {
        "name": "large_disks",
        "params": {"shape": (256, 256), "shapes": ("disk", "disk"), "margin": 4, "seed": 400},
        "description": "Two large convex regions - radius dominated",
    },
]


def main() -> None:
    NPY_DIR.mkdir(parents=True, exist_ok=True)

    manifest = []

    for ds in DATASETS:
        name = ds["name"]
        print(f"Generating: {name} ...")

        result = create_label_phantom(**ds["params"])
        path = NPY_DIR / f"{name}.npy"
        np.save(str(path), result["labels"])

        meta = result["metadata"]
        manifest.append({
            "name": name,
            "description": ds["description"],
            "labels": str(path.relative_to(DATA_DIR.parent)),
            "shape": list(meta["shape"]),
            "label_names": {str(k): v for k, v in meta["label_names"].items()},
            "label_pixel_counts": {str(k): v for k, v in meta["label_pixel_counts"].items()},
        })
        print(f"  -> {path.name}, shape={meta['shape']}, labels={meta['num_labels']}")

    print("Generating: cube_edge_graph ...")
    cube_path = NPY_DIR / "cube_edge_graph.npy"
    np.save(str(cube_path), cube_edge_graph())
    manifest.append({
        "name": "cube_edge_graph",
        "description": "Edges of a cube in an 11^3 volume; opposite corners are 24 "
                       "city-block steps apart",
        "labels": str(cube_path.relative_to(DATA_DIR.parent)),
        "shape": [11, 11, 11],
    })

    # Save manifest
    manifest_path = DATA_DIR / "manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)
    print(f"\nManifest saved to {manifest_path}")
    print(f"Total datasets: {len(manifest)}")


if __name__ == "__main__":
    main()
