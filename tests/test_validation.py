# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

import copy

import pytest

from workflow.validation import validate
from workflow.validation.config_schema import validate_config_schema


def test_valid_config_passes(tmp_path, pipeline_config):
    validate(pipeline_config, tmp_path)


def test_missing_section(tmp_path, pipeline_config):
    config = copy.deepcopy(pipeline_config)
    del config["nitrogen_balance"]
    with pytest.raises(KeyError, match="nitrogen_balance"):
        validate_config_schema(config, tmp_path)


def test_missing_input_file_is_named(tmp_path, pipeline_config):
    config = copy.deepcopy(pipeline_config)
    config["inputs"]["nue"] = "absent.csv"
    with pytest.raises(FileNotFoundError, match="absent.csv"):
        validate_config_schema(config, tmp_path)


@pytest.mark.parametrize(
    "section, key, value",
    [
        ("production", "nitrogen_content", 2.0),
        ("nitrogen_balance", "top_n", 0),
        ("nitrogen_balance", "top_n", True),
        ("boundaries", "simplify_tolerance_km", -1.0),
    ],
)
def test_invalid_values(tmp_path, pipeline_config, section, key, value):
    config = copy.deepcopy(pipeline_config)
    config[section][key] = value
    with pytest.raises(ValueError, match=key):
        validate_config_schema(config, tmp_path)


def test_alias_table_needs_version(tmp_path, pipeline_config):
    config = copy.deepcopy(pipeline_config)
    del config["nue"]["aliases"]["version"]
    with pytest.raises(KeyError, match="version"):
        validate_config_schema(config, tmp_path)


def test_failures_are_collected(tmp_path, pipeline_config):
    config = copy.deepcopy(pipeline_config)
    config["production"]["nitrogen_content"] = 0
    (tmp_path / config["inputs"]["nue"]).write_text("country,nue\nUSA,-1\n")

    with pytest.raises(RuntimeError) as excinfo:
        validate(config, tmp_path)

    message = str(excinfo.value)
    assert "config_schema" in message
    assert "nue_table" in message


def test_unknown_check(tmp_path, pipeline_config):
    with pytest.raises(KeyError, match="bogus"):
        validate(pipeline_config, tmp_path, enabled_checks=["bogus"])
