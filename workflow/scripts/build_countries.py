# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Merge GAUL level-1 boundaries into national polygons and simplify them.

Simplification runs feature by feature in an equal-area projection
(EPSG:6933) so the tolerance is in kilometres. Any feature whose
simplification fails keeps its original geometry.
"""

from dataclasses import dataclass, replace
import logging
from pathlib import Path

import geopandas as gpd
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid

from workflow.scripts.constants import GAUL_COUNTRY_COLUMN
from workflow.scripts.logging_config import setup_script_logging

logger = logging.getLogger(__name__)

EQUAL_AREA_CRS = "EPSG:6933"


@dataclass(frozen=True)
class SimplifyResult:
    """Outcome of simplifying one feature.

    ``simplified`` is False when the original geometry was kept, in which
    case ``error`` describes why.
    """

    geometry: BaseGeometry
    simplified: bool
    error: str | None = None


def read_boundaries(path: str | Path, country_col: str = GAUL_COUNTRY_COLUMN):
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Boundary file not found: {path}")
    gdf = gpd.read_file(path)
    if gdf.crs is None:
        logger.warning("Boundaries %s missing CRS; assuming EPSG:4326", path)
        gdf = gdf.set_crs(4326, allow_override=True)
    if country_col not in gdf.columns:
        raise ValueError(f"Boundary file {path} must contain a '{country_col}' column")
    logger.info("Read %d boundary features from %s", len(gdf), path)
    return gdf


def dissolve_countries(
    gdf: gpd.GeoDataFrame, country_col: str = GAUL_COUNTRY_COLUMN
) -> gpd.GeoDataFrame:
    """Merge features sharing a country name into one feature per country."""
    if country_col not in gdf.columns:
        raise ValueError(f"GeoDataFrame must contain a '{country_col}' column")

    named = gdf[gdf[country_col].notna()]
    dropped = len(gdf) - len(named)
    if dropped:
        logger.warning("Dropping %d features without a %s", dropped, country_col)

    named = named[[country_col, "geometry"]].copy()
    invalid = ~named.geometry.is_valid
    if invalid.any():
        logger.info("Repairing %d invalid geometries before dissolve", int(invalid.sum()))
        named.loc[invalid, "geometry"] = named.loc[invalid, "geometry"].apply(
            make_valid
        )

    countries = named.dissolve(by=country_col, as_index=False)
    countries = countries.sort_values(country_col).reset_index(drop=True)
    logger.info("Dissolved %d features into %d countries", len(gdf), len(countries))
    return countries


def simplify_geometry(geom: BaseGeometry, tolerance: float) -> SimplifyResult:
    """Simplify one geometry, keeping the original if anything goes wrong."""
    if geom is None or geom.is_empty:
        return SimplifyResult(geom, False, "empty geometry")
    try:
        simplified = geom.simplify(tolerance, preserve_topology=True)
    except (GEOSException, ValueError) as exc:
        return SimplifyResult(geom, False, str(exc))
    if simplified.is_empty:
        return SimplifyResult(geom, False, "simplification produced an empty geometry")
    if not simplified.is_valid:
        return SimplifyResult(geom, False, "simplification produced an invalid geometry")
    return SimplifyResult(simplified, True)


def simplify_countries(
    gdf: gpd.GeoDataFrame,
    tolerance_km: float,
    country_col: str = GAUL_COUNTRY_COLUMN,
) -> tuple[gpd.GeoDataFrame, list[SimplifyResult]]:
    """Simplify each feature independently.

    Returns the simplified GeoDataFrame (same rows, original CRS) and the
    per-feature results in row order. Features that fall back carry their
    input geometry untouched; only simplified ones are projected back.
    """
    if gdf.crs is None:
        gdf = gdf.set_crs(4326)
    src_crs = gdf.crs
    projected = gdf.to_crs(EQUAL_AREA_CRS)
    tolerance = tolerance_km * 1e3

    results = [simplify_geometry(geom, tolerance) for geom in projected.geometry]

    geometries = list(gdf.geometry)
    done = [i for i, r in enumerate(results) if r.simplified]
    restored = gpd.GeoSeries(
        [results[i].geometry for i in done], crs=EQUAL_AREA_CRS
    ).to_crs(src_crs)
    for i, geom in zip(done, restored):
        geometries[i] = geom

    for i, (label, result) in enumerate(zip(gdf[country_col], results)):
        if not result.simplified:
            logger.warning("Keeping original geometry for %s: %s", label, result.error)
        results[i] = replace(result, geometry=geometries[i])

    out = gdf.copy()
    out["geometry"] = gpd.GeoSeries(geometries, index=gdf.index, crs=src_crs)
    out = out.set_geometry("geometry")

    n_fallback = sum(not r.simplified for r in results)
    logger.info(
        "Simplified %d of %d countries (%d fallbacks)",
        len(results) - n_fallback,
        len(results),
        n_fallback,
    )
    return out, results


def _remove_small_islands(
    gdf: gpd.GeoDataFrame, min_area_m2: float
) -> gpd.GeoDataFrame:
    """Remove small polygon parts by area threshold in projected CRS.

    Expects geometries in projected meters CRS (e.g., EPSG:6933). Features
    left without any part keep their original geometry.
    """

    def _filter_geom(geom):
        if geom is None or geom.is_empty:
            return geom
        if isinstance(geom, MultiPolygon):
            kept = [p for p in geom.geoms if p.area >= min_area_m2]
            return MultiPolygon(kept) if kept else geom
        return geom

    gdf = gdf.copy()
    gdf["geometry"] = gdf.geometry.apply(_filter_geom)
    return gdf


def remove_small_islands(
    gdf: gpd.GeoDataFrame, min_area_km2: float
) -> gpd.GeoDataFrame:
    if min_area_km2 <= 0:
        return gdf
    src_crs = gdf.crs or "EPSG:4326"
    projected = _remove_small_islands(gdf.to_crs(EQUAL_AREA_CRS), min_area_km2 * 1e6)
    return projected.to_crs(src_crs)


def _is_polygonal(geom) -> bool:
    return isinstance(geom, (Polygon, MultiPolygon))


def run(
    boundaries_path: str,
    countries_path: str,
    simplified_path: str,
    *,
    country_col: str = GAUL_COUNTRY_COLUMN,
    tolerance_km: float = 5.0,
    min_island_area_km2: float = 0.0,
) -> tuple[gpd.GeoDataFrame, gpd.GeoDataFrame]:
    gdf = read_boundaries(boundaries_path, country_col)
    countries = dissolve_countries(gdf, country_col)

    non_polygonal = ~countries.geometry.apply(_is_polygonal)
    if non_polygonal.any():
        logger.warning(
            "%d countries have non-polygonal geometry after dissolve",
            int(non_polygonal.sum()),
        )

    simplified = remove_small_islands(countries, min_island_area_km2)
    simplified, _ = simplify_countries(simplified, tolerance_km, country_col)

    for frame, path in ((countries, countries_path), (simplified, simplified_path)):
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        frame.to_file(out, layer="ADM_0", driver="GPKG")
        logger.info("Wrote %d countries to %s", len(frame), out)

    return countries, simplified


if __name__ == "__main__":
    logger = setup_script_logging(log_file=snakemake.log[0] if snakemake.log else None)  # type: ignore[name-defined]

    run(
        snakemake.input.boundaries,  # type: ignore[name-defined]
        snakemake.output.countries,  # type: ignore[name-defined]
        snakemake.output.countries_simplified,  # type: ignore[name-defined]
        country_col=snakemake.params.country_column,  # type: ignore[name-defined]
        tolerance_km=float(snakemake.params.simplify_tolerance_km),  # type: ignore[name-defined]
        min_island_area_km2=float(snakemake.params.min_island_area_km2),  # type: ignore[name-defined]
    )
