# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Validation of configuration schema and values."""

from pathlib import Path

REQUIRED_INPUTS = ("yield", "harvested_area", "boundaries", "nue")


def validate_config_schema(config: dict, project_root: Path) -> None:
    """Validate configuration schema and values.

    Parameters
    ----------
    config:
        The loaded configuration dictionary.
    project_root:
        Root directory of the repository; input paths are resolved against it.

    Raises
    ------
    KeyError
        If required configuration keys are missing.
    ValueError
        If any configuration value is invalid.
    FileNotFoundError
        If a configured input file does not exist.
    """
    for section in ("inputs", "boundaries", "production", "nue", "nitrogen_balance"):
        if section not in config:
            raise KeyError(f"Missing '{section}' section in config")

    inputs = config["inputs"]
    for key in REQUIRED_INPUTS:
        if not inputs.get(key):
            raise KeyError(f"Missing 'inputs.{key}' in config")

    missing = [
        str(project_root / inputs[key])
        for key in (*REQUIRED_INPUTS, "physical_area")
        if inputs.get(key) and not (project_root / inputs[key]).exists()
    ]
    if missing:
        raise FileNotFoundError(f"Input files not found: {', '.join(missing)}")

    tolerance = config["boundaries"].get("simplify_tolerance_km", 0)
    if not isinstance(tolerance, (int, float)) or tolerance < 0:
        raise ValueError(
            f"boundaries.simplify_tolerance_km must be a non-negative number, got {tolerance!r}"
        )

    n_content = config["production"].get("nitrogen_content")
    if not isinstance(n_content, (int, float)) or not 0 < n_content < 1:
        raise ValueError(
            f"production.nitrogen_content must be in (0, 1), got {n_content!r}"
        )

    top_n = config["nitrogen_balance"].get("top_n")
    if not isinstance(top_n, int) or isinstance(top_n, bool) or top_n < 1:
        raise ValueError(f"nitrogen_balance.top_n must be a positive integer, got {top_n!r}")

    aliases = config["nue"].get("aliases") or {}
    if aliases and "version" not in aliases:
        raise KeyError("Missing 'nue.aliases.version' in config")
    mapping = aliases.get("mapping") or {}
    if not isinstance(mapping, dict):
        raise ValueError("nue.aliases.mapping must be a mapping of source name to GAUL name")
