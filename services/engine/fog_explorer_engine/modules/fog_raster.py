from __future__ import annotations

import math
from pathlib import Path

import numpy as np
from PIL import Image

from ..models import FogRenderData
from .fog_engine import GRADIENT_STOPS

FOG_RGB = (32, 36, 48)


def _stop_table() -> tuple[np.ndarray, np.ndarray]:
    offsets = np.asarray([float(offset.rstrip("%")) / 100.0 for offset, _ in GRADIENT_STOPS], dtype=np.float32)
    opacities = np.asarray([opacity for _, opacity in GRADIENT_STOPS], dtype=np.float32)
    return offsets, opacities


def rasterize_fog(render: FogRenderData, width: int, height: int, fog_opacity: float = 0.85) -> np.ndarray:
    """Rasterize overlay circles into an RGBA fog layer.

    Each circle reveals the map following the radial gradient stops; where
    circles overlap the strongest reveal wins.
    """

    if width <= 0 or height <= 0:
        raise ValueError("raster dimensions must be positive")

    reveal = np.zeros((height, width), dtype=np.float32)
    offsets, opacities = _stop_table()

    for circle in render.circles:
        if circle.r <= 0:
            continue
        x0 = max(0, int(math.floor(circle.cx - circle.r)))
        x1 = min(width, int(math.ceil(circle.cx + circle.r)) + 1)
        y0 = max(0, int(math.floor(circle.cy - circle.r)))
        y1 = min(height, int(math.ceil(circle.cy + circle.r)) + 1)
        if x0 >= x1 or y0 >= y1:
            continue

        xs = np.arange(x0, x1, dtype=np.float32) + 0.5
        ys = np.arange(y0, y1, dtype=np.float32) + 0.5
        grid_x, grid_y = np.meshgrid(xs, ys)
        normalized = np.sqrt((grid_x - circle.cx) ** 2 + (grid_y - circle.cy) ** 2) / circle.r
        local = np.interp(normalized, offsets, opacities, right=0.0).astype(np.float32)
        np.maximum(reveal[y0:y1, x0:x1], local, out=reveal[y0:y1, x0:x1])

    alpha = np.clip(fog_opacity * (1.0 - reveal), 0.0, 1.0)
    layer = np.empty((height, width, 4), dtype=np.uint8)
    layer[..., 0] = FOG_RGB[0]
    layer[..., 1] = FOG_RGB[1]
    layer[..., 2] = FOG_RGB[2]
    layer[..., 3] = np.round(alpha * 255.0).astype(np.uint8)
    return layer


def write_fog_png(path: Path, layer: np.ndarray) -> Path:
    image = Image.fromarray(layer)
    image.save(path, format="PNG")
    return path
