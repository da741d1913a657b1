#! /usr/bin/env python3
# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Build gridded wheat production and nitrogen output rasters.

Definition: production = yield * harvested_area / 1e6 (Mt), with yield in
t/ha and harvested area in ha per cell; nitrogen output = production * 0.02.

Inputs (via Snakemake):
 - yield_raster:          GeoTIFF wheat yield
 - harvested_area_raster: GeoTIFF harvested area
 - physical_area_raster:  GeoTIFF physical area (checked for co-registration)

Outputs:
 - production:      GeoTIFF production (Mt)
 - nitrogen_output: GeoTIFF nitrogen output (Mt N)

Notes:
 - Missing cells (nodata) are NaN and stay NaN through the arithmetic.
 - All three inputs must share grid geometry; no reprojection is done.
"""

import logging

import numpy as np

from workflow.scripts.constants import TONNE_TO_MEGATONNE, WHEAT_N_CONTENT
from workflow.scripts.logging_config import setup_script_logging
from workflow.scripts.raster_utils import (
    RasterGrid,
    check_same_grid,
    read_raster,
    write_geotiff,
)

logger = logging.getLogger(__name__)


def compute_production(yield_arr: np.ndarray, harvested_area: np.ndarray) -> np.ndarray:
    """Production in Mt per cell; NaN wherever either input is NaN."""
    if yield_arr.shape != harvested_area.shape:
        raise ValueError(
            f"Yield shape {yield_arr.shape} does not match harvested area "
            f"shape {harvested_area.shape}"
        )
    return (yield_arr * harvested_area * TONNE_TO_MEGATONNE).astype("float32")


def compute_nitrogen_output(
    production: np.ndarray, n_content: float = WHEAT_N_CONTENT
) -> np.ndarray:
    return (production * n_content).astype("float32")


def log10_for_display(arr: np.ndarray) -> np.ndarray:
    """log10 of ``arr`` with zero, negative and non-finite cells set to NaN."""
    a = np.asarray(arr, dtype="float32")
    valid = np.isfinite(a) & (a > 0)
    out = np.full(a.shape, np.nan, dtype="float32")
    np.log10(a, out=out, where=valid)
    return out


def load_wheat_grids(
    yield_path: str, harvested_area_path: str, physical_area_path: str | None = None
) -> dict[str, RasterGrid]:
    """Read the yield / harvested-area / physical-area triple and check alignment."""
    grids = {
        "yield": read_raster(yield_path),
        "harvested_area": read_raster(harvested_area_path),
    }
    if physical_area_path:
        grids["physical_area"] = read_raster(physical_area_path)
    check_same_grid(grids)
    return grids


def build_production_grids(
    grids: dict[str, RasterGrid], n_content: float = WHEAT_N_CONTENT
) -> tuple[RasterGrid, RasterGrid]:
    ref = grids["yield"]
    production = compute_production(ref.data, grids["harvested_area"].data)
    nitrogen = compute_nitrogen_output(production, n_content)

    total = float(np.nansum(production))
    logger.info(
        "Global production %.2f Mt over %d valid cells; nitrogen output %.3f Mt",
        total,
        int(np.isfinite(production).sum()),
        total * n_content,
    )
    return ref.with_data(production), ref.with_data(nitrogen)


def run(
    yield_path: str,
    harvested_area_path: str,
    physical_area_path: str | None,
    production_path: str,
    nitrogen_path: str,
    n_content: float = WHEAT_N_CONTENT,
) -> tuple[RasterGrid, RasterGrid]:
    grids = load_wheat_grids(yield_path, harvested_area_path, physical_area_path)
    production, nitrogen = build_production_grids(grids, n_content)
    write_geotiff(production, production_path, description="wheat production (Mt)")
    write_geotiff(nitrogen, nitrogen_path, description="nitrogen output (Mt N)")
    return production, nitrogen


if __name__ == "__main__":
    logger = setup_script_logging(log_file=snakemake.log[0] if snakemake.log else None)  # type: ignore[name-defined]

    run(
        snakemake.input.yield_raster,  # type: ignore[name-defined]
        snakemake.input.harvested_area_raster,  # type: ignore[name-defined]
        getattr(snakemake.input, "physical_area_raster", None),  # type: ignore[name-defined]
        snakemake.output.production,  # type: ignore[name-defined]
        snakemake.output.nitrogen_output,  # type: ignore[name-defined]
        float(snakemake.params.nitrogen_content),  # type: ignore[name-defined]
    )
