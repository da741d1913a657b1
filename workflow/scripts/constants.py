# SPDX-FileCopyrightText: 2025 Koen van Greevenbroek
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Constants and unit conversion factors for the wheat nitrogen pipeline."""

# Unit conversion factors
TONNE_TO_MEGATONNE = 1e-6  # convert tonnes to megatonnes
HA_TO_MHA = 1e-6  # convert hectares to million hectares

# Assumed nitrogen mass fraction of harvested wheat
WHEAT_N_CONTENT = 0.02

# Default country-name column of the GAUL boundary layers
GAUL_COUNTRY_COLUMN = "ADM0_NAME"

DEFAULT_TOP_N = 10
