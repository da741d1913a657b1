#! /usr/bin/env python3
# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Sum gridded wheat production per country.

Definition: a cell belongs to a polygon when its centre falls inside it;
missing cells are ignored. Sums are taken per GAUL level-1 polygon and
then added up per country name.

Inputs (via Snakemake):
 - production:     GeoTIFF production (Mt)
 - harvested_area: GeoTIFF harvested area (ha)
 - physical_area:  GeoTIFF physical area (ha), optional
 - boundaries:     GAUL level-1 polygons with a country-name column

Output:
 - CSV with columns: country, production_mt, harvested_area_mha,
   physical_area_mha (largest producers first)
"""

import logging
from pathlib import Path

import geopandas as gpd
import numpy as np
import pandas as pd
import rasterio.features as rfeatures
from rasterio.transform import Affine

from workflow.scripts.build_countries import read_boundaries
from workflow.scripts.constants import GAUL_COUNTRY_COLUMN, HA_TO_MHA
from workflow.scripts.logging_config import setup_script_logging
from workflow.scripts.raster_utils import check_same_grid, read_raster

logger = logging.getLogger(__name__)


def rasterize_polygon_ids(
    geometries: gpd.GeoSeries, shape: tuple[int, int], transform: Affine
) -> np.ndarray:
    """Label each cell with the row position of the polygon containing its centre.

    Cells outside every polygon are -1. Where polygons overlap the later one
    wins, so each cell is counted at most once.
    """
    shapes = [
        (geom, idx)
        for idx, geom in enumerate(geometries)
        if geom is not None and not geom.is_empty
    ]
    if not shapes:
        return np.full(shape, -1, dtype=np.int32)
    return rfeatures.rasterize(
        shapes,
        out_shape=shape,
        transform=transform,
        fill=-1,
        all_touched=False,
        dtype=np.int32,
    )


def zonal_sum(
    values: np.ndarray, polygon_ids: np.ndarray, n_polygons: int
) -> np.ndarray:
    """Sum finite ``values`` per polygon id; polygons without cells get 0."""
    mask = (polygon_ids >= 0) & np.isfinite(values)
    return np.bincount(
        polygon_ids[mask],
        weights=values[mask].astype("float64"),
        minlength=n_polygons,
    )[:n_polygons]


def sum_by_polygon(
    gdf: gpd.GeoDataFrame,
    rasters: dict[str, np.ndarray],
    transform: Affine,
    crs: str,
) -> pd.DataFrame:
    """Zonal sums of each named raster for every row of ``gdf``."""
    shapes = {arr.shape for arr in rasters.values()}
    if len(shapes) != 1:
        raise ValueError(f"Rasters have differing shapes: {sorted(shapes)}")
    (shape,) = shapes

    if gdf.crs is not None and crs and not gdf.crs.equals(crs):
        gdf = gdf.to_crs(crs)

    ids = rasterize_polygon_ids(gdf.geometry, shape, transform)
    sums = {name: zonal_sum(arr, ids, len(gdf)) for name, arr in rasters.items()}
    return pd.DataFrame(sums, index=gdf.index)


def production_by_country(
    boundaries: gpd.GeoDataFrame,
    production: np.ndarray,
    transform: Affine,
    crs: str,
    *,
    harvested_area: np.ndarray | None = None,
    physical_area: np.ndarray | None = None,
    country_col: str = GAUL_COUNTRY_COLUMN,
) -> pd.DataFrame:
    rasters = {"production_mt": production}
    if harvested_area is not None:
        rasters["harvested_area_mha"] = harvested_area * HA_TO_MHA
    if physical_area is not None:
        rasters["physical_area_mha"] = physical_area * HA_TO_MHA

    per_polygon = sum_by_polygon(boundaries, rasters, transform, crs)
    per_polygon["country"] = boundaries[country_col].to_numpy()
    per_polygon = per_polygon[per_polygon["country"].notna()]

    out = (
        per_polygon.groupby("country", as_index=False)[list(rasters)]
        .sum()
        .sort_values("production_mt", ascending=False)
        .reset_index(drop=True)
    )

    assigned = float(out["production_mt"].sum())
    total = float(np.nansum(production))
    if total > 0:
        logger.info(
            "Assigned %.2f of %.2f Mt (%.1f%%) to %d countries",
            assigned,
            total,
            100.0 * assigned / total,
            len(out),
        )
    return out


def run(
    production_path: str,
    boundaries_path: str,
    output_csv: str,
    *,
    harvested_area_path: str | None = None,
    physical_area_path: str | None = None,
    country_col: str = GAUL_COUNTRY_COLUMN,
) -> pd.DataFrame:
    grids = {"production": read_raster(production_path)}
    if harvested_area_path:
        grids["harvested_area"] = read_raster(harvested_area_path)
    if physical_area_path:
        grids["physical_area"] = read_raster(physical_area_path)
    check_same_grid(grids)

    ref = grids["production"]
    boundaries = read_boundaries(boundaries_path, country_col)
    df = production_by_country(
        boundaries,
        ref.data,
        ref.transform,
        ref.crs,
        harvested_area=grids["harvested_area"].data if "harvested_area" in grids else None,
        physical_area=grids["physical_area"].data if "physical_area" in grids else None,
        country_col=country_col,
    )

    out_path = Path(output_csv)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_path, index=False)
    logger.info("Wrote production for %d countries to %s", len(df), out_path)
    return df


if __name__ == "__main__":
    logger = setup_script_logging(log_file=snakemake.log[0] if snakemake.log else None)  # type: ignore[name-defined]

    run(
        snakemake.input.production,  # type: ignore[name-defined]
        snakemake.input.boundaries,  # type: ignore[name-defined]
        snakemake.output.csv,  # type: ignore[name-defined]
        harvested_area_path=getattr(snakemake.input, "harvested_area", None),  # type: ignore[name-defined]
        physical_area_path=getattr(snakemake.input, "physical_area", None),  # type: ignore[name-defined]
        country_col=snakemake.params.country_column,  # type: ignore[name-defined]
    )
