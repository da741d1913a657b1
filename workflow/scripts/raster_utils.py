"""
SPDX-FileCopyrightText: 2025 Koen van Greevenbroek

SPDX-License-Identifier: GPL-3.0-or-later
"""

from dataclasses import dataclass
import logging
from pathlib import Path

import numpy as np
from pyproj import CRS
import rasterio
from rasterio.transform import Affine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RasterGrid:
    """Single-band raster held in memory with NaN marking missing cells."""

    data: np.ndarray
    transform: Affine
    crs: str

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape

    def with_data(self, data: np.ndarray) -> "RasterGrid":
        """Return a grid on the same geometry carrying ``data``."""
        if data.shape != self.data.shape:
            raise ValueError(
                f"Array shape {data.shape} does not match grid shape {self.data.shape}"
            )
        return RasterGrid(data=data, transform=self.transform, crs=self.crs)


def read_raster(path: str | Path, *, default_crs: str = "EPSG:4326") -> RasterGrid:
    """Read band 1 of a raster as float32, mapping nodata to NaN."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Raster not found: {path}")
    with rasterio.open(path) as src:
        arr = src.read(1).astype("float32", copy=False)
        nodata = src.nodata
        if nodata is not None and not np.isnan(nodata):
            arr = np.where(arr == nodata, np.nan, arr).astype("float32")
        crs = src.crs.to_string() if src.crs else default_crs
        transform = src.transform
    logger.info("Read %s (%dx%d)", path, *arr.shape)
    return RasterGrid(data=arr, transform=transform, crs=crs)


def same_grid(a: RasterGrid, b: RasterGrid) -> bool:
    """True when both grids share shape, transform and CRS."""
    return (
        a.shape == b.shape
        and a.transform.almost_equals(b.transform)
        and CRS.from_user_input(a.crs).equals(CRS.from_user_input(b.crs))
    )


def check_same_grid(grids: dict[str, RasterGrid]) -> None:
    """Raise if any named grid differs in geometry from the first one."""
    items = list(grids.items())
    if not items:
        return
    ref_name, ref = items[0]
    for name, grid in items[1:]:
        if not same_grid(ref, grid):
            raise ValueError(
                f"Raster '{name}' is not co-registered with '{ref_name}': "
                f"shape {grid.shape} vs {ref.shape}, "
                f"transform {tuple(grid.transform)[:6]} vs {tuple(ref.transform)[:6]}"
            )


def write_geotiff(grid: RasterGrid, path: str | Path, *, description=None) -> Path:
    """Write a grid as a single-band float32 GeoTIFF with NaN nodata."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    height, width = grid.shape
    profile = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": 1,
        "dtype": "float32",
        "crs": grid.crs,
        "transform": grid.transform,
        "nodata": np.nan,
        "compress": "deflate",
    }
    with rasterio.open(out, "w", **profile) as dst:
        dst.write(grid.data.astype("float32"), 1)
        if description:
            dst.set_band_description(1, description)
    logger.info("Wrote %s", out)
    return out


def cell_center_coords(transform, width: int, height: int):
    """Return 1D arrays of cell-centre x and y coordinates."""
    x_coords = transform.c + np.arange(width) * transform.a + transform.a / 2
    y_coords = transform.f + np.arange(height) * transform.e + transform.e / 2
    return x_coords, y_coords
