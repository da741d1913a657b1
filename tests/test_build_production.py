# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

import numpy as np
import pytest
from rasterio.transform import from_origin

from workflow.scripts.build_production import (
    build_production_grids,
    compute_nitrogen_output,
    compute_production,
    load_wheat_grids,
    log10_for_display,
    run,
)
from workflow.scripts.raster_utils import read_raster, same_grid


def test_production_is_yield_times_area_in_megatonnes():
    y = np.array([[2.0, 3.5], [np.nan, 1.0]], dtype="float32")
    a = np.array([[1000.0, 200.0], [50.0, np.nan]], dtype="float32")

    prod = compute_production(y, a)

    valid = np.isfinite(y) & np.isfinite(a)
    np.testing.assert_allclose(prod[valid], (y * a / 1e6)[valid], rtol=1e-6)
    assert np.isnan(prod[1, 0])
    assert np.isnan(prod[1, 1])


def test_nitrogen_output_is_two_percent_of_production():
    prod = np.array([[1.0, np.nan], [0.0, 250.0]], dtype="float32")
    n_out = compute_nitrogen_output(prod)
    np.testing.assert_allclose(n_out[[0, 1, 1], [0, 0, 1]], [0.02, 0.0, 5.0], rtol=1e-6)
    assert np.isnan(n_out[0, 1])


def test_production_shape_mismatch_raises():
    with pytest.raises(ValueError, match="does not match"):
        compute_production(np.ones((2, 2)), np.ones((3, 2)))


def test_log10_masks_non_positive_cells():
    arr = np.array([[100.0, 0.0], [-1.0, np.nan]], dtype="float32")
    out = log10_for_display(arr)
    assert out[0, 0] == pytest.approx(2.0)
    assert np.isnan(out[0, 1])
    assert np.isnan(out[1, 0])
    assert np.isnan(out[1, 1])


def test_nodata_cells_propagate_as_missing(tmp_path, raster_writer):
    y = raster_writer(tmp_path / "y.tif", [[2.0, -9999.0], [1.0, 1.0]], nodata=-9999.0)
    a = raster_writer(tmp_path / "a.tif", [[10.0, 10.0], [10.0, 10.0]])

    production, nitrogen = build_production_grids(load_wheat_grids(str(y), str(a)))

    assert np.isnan(production.data[0, 1])
    assert np.isnan(nitrogen.data[0, 1])
    assert production.data[0, 0] == pytest.approx(2e-5)


def test_misaligned_inputs_are_rejected(tmp_path, raster_writer):
    y = raster_writer(tmp_path / "y.tif", [[1.0, 1.0], [1.0, 1.0]])
    a = raster_writer(
        tmp_path / "a.tif",
        [[1.0, 1.0], [1.0, 1.0]],
        transform=from_origin(0.5, 2.0, 1.0, 1.0),
    )
    with pytest.raises(ValueError, match="not co-registered"):
        load_wheat_grids(str(y), str(a))


def test_missing_input_raster(tmp_path, wheat_rasters):
    with pytest.raises(FileNotFoundError, match="missing.tif"):
        load_wheat_grids(str(wheat_rasters["yield"]), str(tmp_path / "missing.tif"))


def test_run_writes_geotiffs_on_input_grid(tmp_path, wheat_rasters):
    prod_path = tmp_path / "out" / "production.tif"
    n_path = tmp_path / "out" / "nitrogen_output.tif"

    run(
        str(wheat_rasters["yield"]),
        str(wheat_rasters["harvested_area"]),
        str(wheat_rasters["physical_area"]),
        str(prod_path),
        str(n_path),
    )

    ref = read_raster(wheat_rasters["yield"])
    prod = read_raster(prod_path)
    n_out = read_raster(n_path)
    assert same_grid(ref, prod)
    assert same_grid(ref, n_out)
    np.testing.assert_allclose(prod.data, [[2e-6, 4e-6], [0.0, 6e-6]], rtol=1e-5)
    np.testing.assert_allclose(n_out.data, prod.data * 0.02, rtol=1e-5)
