#! /usr/bin/env python3
# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Run every stage of the wheat nitrogen pipeline in order.

This is the all-at-once counterpart of the Snakemake workflow; both read
the same configuration file and write the same outputs.

Usage:
    python -m workflow.scripts.run_pipeline [--config config/config.yaml]
        [--until {production,countries,country_production,nitrogen,plots}]
"""

import argparse
import logging
from pathlib import Path

import pandas as pd
import yaml

from workflow.scripts import (
    build_countries,
    build_production,
    compute_nitrogen_balance,
    compute_production_by_country,
)
from workflow.scripts.country_names import CountryAliases
from workflow.scripts.logging_config import setup_script_logging
from workflow.scripts.plotting.plot_log_raster_map import plot_log_raster_map
from workflow.scripts.plotting.plot_nitrogen_balance import plot_nitrogen_balance
from workflow.validation import validate

logger = logging.getLogger(__name__)

STAGES = ("production", "countries", "country_production", "nitrogen", "plots")

OUTPUT_FILES = {
    "production": "production.tif",
    "nitrogen_output": "nitrogen_output.tif",
    "countries": "countries.gpkg",
    "countries_simplified": "countries_simplified.gpkg",
    "country_production": "production_by_country.csv",
    "balance": "nitrogen_balance.csv",
    "top": "nitrogen_top10.csv",
    "correlation": "production_loss_correlation.csv",
    "unmatched": "nue_unmatched_countries.csv",
    "production_map": "production_map.pdf",
    "nitrogen_map": "nitrogen_output_map.pdf",
    "balance_chart": "nitrogen_top10.pdf",
}


def load_config(path: str | Path) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path) as f:
        config = yaml.safe_load(f) or {}
    return config


def output_paths(config: dict, project_root: Path) -> dict[str, Path]:
    out_dir = project_root / config.get("output_dir", "outputs")
    return {key: out_dir / name for key, name in OUTPUT_FILES.items()}


def run_pipeline(
    config: dict,
    project_root: Path | None = None,
    *,
    until: str = STAGES[-1],
    skip_validation: bool = False,
) -> dict[str, Path]:
    """Execute stages up to and including ``until``; return the output paths."""
    if until not in STAGES:
        raise ValueError(f"Unknown stage '{until}'; expected one of {', '.join(STAGES)}")

    root = Path(project_root) if project_root else Path.cwd()
    if not skip_validation:
        validate(config, root)

    inputs = {k: str(root / v) for k, v in config["inputs"].items() if v}
    bcfg = config["boundaries"]
    country_col = bcfg.get("country_column", "ADM0_NAME")
    n_content = float(config["production"]["nitrogen_content"])
    nue_cfg = config["nue"]
    plot_cfg = config.get("plotting", {})
    paths = output_paths(config, root)

    def production():
        build_production.run(
            inputs["yield"],
            inputs["harvested_area"],
            inputs.get("physical_area"),
            str(paths["production"]),
            str(paths["nitrogen_output"]),
            n_content,
        )

    def countries():
        build_countries.run(
            inputs["boundaries"],
            str(paths["countries"]),
            str(paths["countries_simplified"]),
            country_col=country_col,
            tolerance_km=float(bcfg.get("simplify_tolerance_km", 5.0)),
            min_island_area_km2=float(bcfg.get("min_island_area_km2", 0.0)),
        )

    def country_production():
        compute_production_by_country.run(
            str(paths["production"]),
            inputs["boundaries"],
            str(paths["country_production"]),
            harvested_area_path=inputs["harvested_area"],
            physical_area_path=inputs.get("physical_area"),
            country_col=country_col,
        )

    def nitrogen():
        compute_nitrogen_balance.run(
            str(paths["country_production"]),
            inputs["nue"],
            balance_csv=str(paths["balance"]),
            top_csv=str(paths["top"]),
            correlation_csv=str(paths["correlation"]),
            unmatched_csv=str(paths["unmatched"]),
            aliases=CountryAliases.from_config(nue_cfg.get("aliases")),
            country_col=nue_cfg.get("country_column", "country"),
            nue_col=nue_cfg.get("value_column", "nue"),
            n_content=n_content,
            top_n=int(config["nitrogen_balance"]["top_n"]),
        )

    def plots():
        cmap = plot_cfg.get("cmap", "YlGn")
        plot_log_raster_map(
            str(paths["production"]),
            str(paths["countries_simplified"]),
            str(paths["production_map"]),
            title=plot_cfg.get("production_title", "Wheat production"),
            unit="Mt",
            cmap_name=cmap,
        )
        plot_log_raster_map(
            str(paths["nitrogen_output"]),
            str(paths["countries_simplified"]),
            str(paths["nitrogen_map"]),
            title=plot_cfg.get("nitrogen_title", "Nitrogen in harvested wheat"),
            unit="Mt N",
            cmap_name=plot_cfg.get("nitrogen_cmap", cmap),
        )
        plot_nitrogen_balance(
            pd.read_csv(paths["top"]),
            str(paths["balance_chart"]),
            title=plot_cfg.get("balance_title", "Wheat nitrogen balance, top producers"),
        )

    steps = {
        "production": production,
        "countries": countries,
        "country_production": country_production,
        "nitrogen": nitrogen,
        "plots": plots,
    }
    for stage in STAGES[: STAGES.index(until) + 1]:
        logger.info("Running stage '%s'", stage)
        try:
            steps[stage]()
        except Exception:
            logger.error("Stage '%s' failed", stage)
            raise

    return paths


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--config", default="config/config.yaml")
    parser.add_argument("--until", choices=STAGES, default=STAGES[-1])
    args = parser.parse_args(argv)

    config = load_config(args.config)
    log_file = config.get("logging", {}).get("file")
    setup_script_logging(log_file=log_file, level=config.get("logging", {}).get("level", "INFO"))
    run_pipeline(config, Path.cwd(), until=args.until)


if __name__ == "__main__":
    main()
