# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
import rasterio
from rasterio.transform import from_origin
from shapely.geometry import box

# 2x2 grid of one-degree cells spanning lon 0..2, lat 0..2
GRID_TRANSFORM = from_origin(0.0, 2.0, 1.0, 1.0)


def write_raster(path, arr, transform=GRID_TRANSFORM, nodata=None, crs="EPSG:4326"):
    arr = np.asarray(arr, dtype="float32")
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=arr.shape[0],
        width=arr.shape[1],
        count=1,
        dtype="float32",
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dst:
        dst.write(arr, 1)
    return path


@pytest.fixture
def wheat_rasters(tmp_path):
    """Yield, harvested and physical area rasters for the 2x2 scenario."""
    return {
        "yield": write_raster(
            tmp_path / "yield.tif", [[2.0, 4.0], [0.0, 6.0]]
        ),
        "harvested_area": write_raster(
            tmp_path / "harvested.tif", [[1.0, 1.0], [1.0, 1.0]]
        ),
        "physical_area": write_raster(
            tmp_path / "physical.tif", [[1.0, 1.0], [1.0, 2.0]]
        ),
    }


@pytest.fixture
def subnational():
    """Level-1 polygons: two halves of one country and one other country."""
    return gpd.GeoDataFrame(
        {
            "ADM1_NAME": ["West", "East", "Elsewhere"],
            "ADM0_NAME": [
                "United States of America",
                "United States of America",
                "France",
            ],
        },
        geometry=[box(0, 0, 1, 2), box(1, 0, 2, 2), box(10, 10, 11, 11)],
        crs="EPSG:4326",
    )


@pytest.fixture
def nue_csv(tmp_path):
    path = tmp_path / "nue.csv"
    pd.DataFrame(
        {"country": ["USA", "Germany", "RussianFed"], "nue": [0.5, 0.6, 0.4]}
    ).to_csv(path, index=False)
    return path


@pytest.fixture
def pipeline_config(tmp_path, wheat_rasters, subnational, nue_csv):
    boundaries = tmp_path / "gaul.gpkg"
    subnational.to_file(boundaries, driver="GPKG")
    return {
        "inputs": {
            "yield": wheat_rasters["yield"].name,
            "harvested_area": wheat_rasters["harvested_area"].name,
            "physical_area": wheat_rasters["physical_area"].name,
            "boundaries": boundaries.name,
            "nue": nue_csv.name,
        },
        "output_dir": "outputs",
        "boundaries": {
            "country_column": "ADM0_NAME",
            "simplify_tolerance_km": 5.0,
            "min_island_area_km2": 0.0,
        },
        "production": {"nitrogen_content": 0.02},
        "nue": {
            "country_column": "country",
            "value_column": "nue",
            "aliases": {
                "version": "1",
                "mapping": {
                    "USA": "United States of America",
                    "RussianFed": "Russian Federation",
                },
            },
        },
        "nitrogen_balance": {"top_n": 10},
        "plotting": {"cmap": "YlGn", "nitrogen_cmap": "YlOrBr"},
    }


@pytest.fixture
def raster_writer():
    return write_raster
