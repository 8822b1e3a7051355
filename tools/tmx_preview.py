#!/usr/bin/env python3
"""
tmx_preview.py
Render the stored tile grid of a .tmx map into a PNG for eyeballing conversions.

Each cell becomes one pixel (before scaling). Empty cells (-1) use palette
entry 0; tile N uses entry 1 + N % 15 so neighbouring indices stay distinct.
"""

import argparse
import sys
from pathlib import Path

import numpy as np
from PIL import Image

from tmx_errors import TmxError, TmxSchemaError
from tmx_parser import MapDocument, parse_tmx

PALETTE = np.array(
    [
        (0, 0, 0),
        (255, 255, 255),
        (136, 0, 0),
        (170, 255, 238),
        (204, 68, 204),
        (0, 204, 85),
        (0, 0, 170),
        (238, 238, 119),
        (221, 136, 85),
        (102, 68, 0),
        (255, 119, 119),
        (51, 51, 51),
        (119, 119, 119),
        (170, 255, 102),
        (0, 136, 255),
        (187, 187, 187),
    ],
    dtype=np.uint8,
)


def stored_grid(doc: MapDocument, path: str = "<string>") -> np.ndarray:
    if not doc.is_complete():
        raise TmxSchemaError(
            path,
            f"preview needs {doc.expected_count} tiles for {doc.width}x{doc.height}, got {len(doc.tiles)}",
        )
    grid = np.asarray(doc.tiles, dtype=np.int64).reshape(doc.height, doc.width)
    return grid - 1


def grid_to_palette_idx(grid: np.ndarray) -> np.ndarray:
    idx = np.zeros(grid.shape, dtype=np.uint8)
    filled = grid >= 0
    idx[filled] = 1 + grid[filled] % (len(PALETTE) - 1)
    return idx


def render_preview(doc: MapDocument, scale: int = 4, path: str = "<string>") -> Image.Image:
    idx = grid_to_palette_idx(stored_grid(doc, path))
    img = Image.fromarray(PALETTE[idx])
    if scale != 1:
        img = img.resize((doc.width * scale, doc.height * scale), resample=Image.NEAREST)
    return img


def save_preview(img: Image.Image, out_path: str) -> None:
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    img.save(out)


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("tmx", help="Input Tiled map (.tmx)")
    ap.add_argument("out", help="Output PNG path")
    ap.add_argument("--scale", type=int, default=4, help="Scale factor")
    args = ap.parse_args()

    try:
        doc = parse_tmx(args.tmx)
        img = render_preview(doc, max(1, args.scale), args.tmx)
    except TmxError as e:
        print(e.diagnostic(), file=sys.stderr)
        sys.exit(1)
    save_preview(img, args.out)
    print(f"Wrote {args.out}")


if __name__ == "__main__":
    main()
