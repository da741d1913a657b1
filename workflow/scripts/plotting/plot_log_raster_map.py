# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Plot a log10-scaled gridded quantity on an Equal Earth map with national outlines."""

import logging
from pathlib import Path

import cartopy.crs as ccrs
import geopandas as gpd
import matplotlib

matplotlib.use("pdf")
from matplotlib import colormaps
from matplotlib.colors import Normalize
import matplotlib.pyplot as plt
from matplotlib.ticker import FixedLocator
import numpy as np
from rasterio.transform import array_bounds

from workflow.scripts.build_production import log10_for_display
from workflow.scripts.logging_config import setup_script_logging
from workflow.scripts.raster_utils import cell_center_coords, read_raster

logger = logging.getLogger(__name__)


def _compute_limits(arr: np.ndarray) -> tuple[float, float]:
    finite = arr[np.isfinite(arr)]
    if finite.size == 0:
        return 0.0, 1.0
    lo = float(np.percentile(finite, 1))
    hi = float(np.max(finite))
    if np.isclose(hi, lo):
        hi = lo + 1e-6
    return lo, hi


def image_extent(transform, width: int, height: int) -> list[float]:
    """Cell-edge extent [left, right, bottom, top] of a grid for ``imshow``."""
    west, south, east, north = array_bounds(height, width, transform)
    return [min(west, east), max(west, east), min(south, north), max(south, north)]


def plot_log_raster_map(
    raster_path: str,
    countries_path: str,
    output_path: str,
    *,
    title: str,
    unit: str,
    cmap_name: str = "YlGn",
) -> Path:
    grid = read_raster(raster_path)
    log_arr = log10_for_display(grid.data)
    n_masked = int(np.isfinite(grid.data).sum() - np.isfinite(log_arr).sum())
    if n_masked:
        logger.info("Masked %d non-positive cells before log transform", n_masked)

    height, width = log_arr.shape
    lon, lat = cell_center_coords(grid.transform, width, height)
    if lat[0] > lat[-1]:
        lat = lat[::-1]
        log_arr = log_arr[::-1, :]

    countries = gpd.read_file(countries_path)
    if countries.crs is None:
        countries = countries.set_crs(4326, allow_override=True)
    else:
        countries = countries.to_crs(4326)

    vmin, vmax = _compute_limits(log_arr)
    cmap = colormaps.get_cmap(cmap_name).copy()
    cmap.set_bad(alpha=0.0)
    norm = Normalize(vmin=vmin, vmax=vmax)

    fig, ax = plt.subplots(
        figsize=(12, 6.5), dpi=150, subplot_kw={"projection": ccrs.EqualEarth()}
    )
    ax.set_facecolor("#f7f9fb")
    ax.set_global()
    plate = ccrs.PlateCarree()

    # High-resolution grids use imshow for speed, coarse ones pcolormesh
    if height > 1000 or width > 1000:
        extent = image_extent(grid.transform, width, height)
        img = ax.imshow(
            log_arr,
            origin="lower",
            extent=extent,
            transform=plate,
            cmap=cmap,
            norm=norm,
        )
    else:
        lon2d, lat2d = np.meshgrid(lon, lat)
        img = ax.pcolormesh(
            lon2d,
            lat2d,
            np.ma.masked_invalid(log_arr),
            transform=plate,
            cmap=cmap,
            norm=norm,
            shading="auto",
        )

    ax.add_geometries(
        countries.geometry,
        crs=plate,
        facecolor="none",
        edgecolor="#444444",
        linewidth=0.25,
        zorder=5,
    )

    ax.set_title(title)
    ax.gridlines(
        draw_labels=False,
        linewidth=0.2,
        color="#888888",
        alpha=0.4,
        linestyle="--",
        xlocs=FixedLocator(range(-180, 181, 60)),
        ylocs=FixedLocator(range(-60, 61, 30)),
    )
    cb = fig.colorbar(img, ax=ax, orientation="horizontal", fraction=0.045, pad=0.08)
    cb.set_label(f"log10({unit})")

    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out, bbox_inches="tight")
    plt.close(fig)
    logger.info("Saved map to %s", out)
    return out


if __name__ == "__main__":
    logger = setup_script_logging(log_file=snakemake.log[0] if snakemake.log else None)  # type: ignore[name-defined]

    plot_log_raster_map(
        snakemake.input.raster,  # type: ignore[name-defined]
        snakemake.input.countries,  # type: ignore[name-defined]
        snakemake.output.pdf,  # type: ignore[name-defined]
        title=snakemake.params.title,  # type: ignore[name-defined]
        unit=snakemake.params.unit,  # type: ignore[name-defined]
        cmap_name=snakemake.params.cmap,  # type: ignore[name-defined]
    )
