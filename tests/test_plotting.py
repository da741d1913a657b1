# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

import pandas as pd
import pytest
from rasterio.transform import from_origin

from workflow.scripts.plotting.plot_log_raster_map import image_extent, plot_log_raster_map
from workflow.scripts.plotting.plot_nitrogen_balance import plot_nitrogen_balance


@pytest.fixture
def top():
    return pd.DataFrame(
        {
            "country": ["India", "France"],
            "n_output_mt": [2.0, 0.7],
            "n_loss_mt": [3.0, 0.3],
        }
    )


def test_bar_chart_written(tmp_path, top):
    out = plot_nitrogen_balance(top, str(tmp_path / "figs" / "top.pdf"))
    assert out.exists()
    assert out.stat().st_size > 0


def test_bar_chart_placeholder_for_empty_table(tmp_path, top):
    out = plot_nitrogen_balance(top.iloc[0:0], str(tmp_path / "empty.pdf"))
    assert out.exists()


def test_bar_chart_requires_columns(tmp_path, top):
    with pytest.raises(ValueError, match="n_loss_mt"):
        plot_nitrogen_balance(top.drop(columns="n_loss_mt"), str(tmp_path / "x.pdf"))


def test_log_map_written_with_zero_cells(tmp_path, wheat_rasters, subnational):
    countries = tmp_path / "countries.gpkg"
    subnational.to_file(countries, driver="GPKG")

    out = plot_log_raster_map(
        str(wheat_rasters["yield"]),
        str(countries),
        str(tmp_path / "map.pdf"),
        title="Yield",
        unit="t/ha",
    )
    assert out.exists()


def test_unwritable_output_is_surfaced(tmp_path, top):
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(OSError):
        plot_nitrogen_balance(top, str(blocker / "top.pdf"))


def test_image_extent_uses_cell_edges():
    transform = from_origin(-180.0, 90.0, 0.5, 0.5)
    assert image_extent(transform, 720, 360) == [-180.0, 180.0, -90.0, 90.0]
