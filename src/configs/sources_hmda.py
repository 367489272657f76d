"""
Source configuration for the HMDA denial-rate maps.

Canonical keys (aligned across tables):
- county_code: 5-digit county FIPS code (state 2 + county 3), always a zero-padded string
- ethnicity: Latino | NotLatino (recoded from derived_ethnicity)
- action_taken: HMDA action code (integer)

Loans come from the HMDA data browser (2021, nationwide, pre-filtered on
derived_ethnicity). Counties come from Natural Earth 10m admin-2 counties.
"""

SOURCES_HMDA = {
    "loans": {
        "path": "data/raw_data/hmda_2021/all_banks_nationwide_2021.csv",
        "format": "csv",
        "vintage": 2021,
        # Read county code as string so no step can drop leading zeros
        "read_dtypes": {
            "county_code": "string",
            "derived_ethnicity": "string",
        },
        "keys": {
            "county_code": "county_code",
        },
        # county_code is zero-padded to this width before any grouping or join
        "code_width": 5,
        "value_columns": {
            "ethnicity": "derived_ethnicity",
            "action_taken": "action_taken",
        },
        # Closed set: anything else raises UnrecognizedCategory
        "recode": {
            "ethnicity": {
                "Hispanic or Latino": "Latino",
                "Not Hispanic or Latino": "NotLatino",
            },
        },
        # Set to an int (e.g. 1_000_000) to aggregate the file in chunks
        "chunksize": None,
    },
    "counties": {
        "path": "data/raw_data/ne_10m_admin_2_counties/ne_10m_admin_2_counties.shp",
        "format": "shp",
        "keys": {
            "county_code": "CODE_LOCAL",
        },
        "region_column": "REGION",
        "code_width": 5,
    },
}

# Choropleth bins for percent denied (right-closed, as pd.cut)
MAP_BINS = [1, 5, 10, 15, 20, 25, 100]
MAP_BIN_LABELS = ["1-5", "6-10", "11-15", "16-20", "21-25", "26% or more"]
EXCLUDED_REGIONS = ["AK", "HI"]
MAP_CMAP = "Blues"

DEFAULT_OUTPUT_DIR = "data_revealed/denial_maps"
