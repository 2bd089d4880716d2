"""
Example subsets of the CoralHydro2k time-series table.

Suggested fields for filtering (see the database descriptor tables):
    paleoData_coralHydro2kGroup, paleoData_variableName, minYear, maxYear,
    hasResolution_nominal / _minimum / _mean / _median / _maximum,
    geo_latitude, geo_longitude, geo_siteName, geo_ocean,
    paleoData_archiveSpecies
"""

from __future__ import annotations

import pandas as pd

MONTHLY = ("monthly", "monthly_uneven")
ANNUAL = ("annual", "annual_uneven")


def _variable(df: pd.DataFrame) -> pd.Series:
    return df["paleoData_variableName"].fillna("").astype(str)


def _contains(df: pd.DataFrame, column: str, text: str) -> pd.Series:
    if column not in df.columns:
        return pd.Series(False, index=df.index)
    return df[column].fillna("").astype(str).str.contains(text, case=False, regex=False)


def _group_numbers(df: pd.DataFrame) -> pd.Series:
    return pd.to_numeric(df["paleoData_coralHydro2kGroup"], errors="coerce")


def search_series(df: pd.DataFrame) -> pd.DataFrame:
    """Drop the 'year' series and analytical uncertainty series."""
    var = _variable(df)
    mask = (var != "year") & ~var.str.contains("uncertainty", case=False)
    return df[mask]


def primary_series(search: pd.DataFrame) -> pd.DataFrame:
    """Drop d18O_sw series and annual averages of higher-resolution data."""
    var = _variable(search)
    mask = (var != "d18O_sw") & ~var.str.contains("_annual", regex=False)
    return search[mask]


def by_groups(df: pd.DataFrame, groups) -> pd.DataFrame:
    return df[_group_numbers(df).isin(list(groups))]


def paired_series(df: pd.DataFrame) -> pd.DataFrame:
    """Groups 1-3 (paired Sr/Ca-d18O records)."""
    return df[_group_numbers(df) <= 3]


def near_equator(df: pd.DataFrame, max_lat: float = 5.0) -> pd.DataFrame:
    lat = pd.to_numeric(df["geo_latitude"], errors="coerce")
    return df[(lat <= max_lat) & (lat >= -max_lat)]


def by_variable(df: pd.DataFrame, name: str) -> pd.DataFrame:
    return df[_variable(df) == name]


def by_resolution(df: pd.DataFrame, nominal=MONTHLY) -> pd.DataFrame:
    if "hasResolution_nominal" not in df.columns:
        return df.iloc[0:0]
    return df[df["hasResolution_nominal"].isin(list(nominal))]


def by_species(df: pd.DataFrame, text: str) -> pd.DataFrame:
    return df[_contains(df, "paleoData_archiveSpecies", text)]


def by_ocean(df: pd.DataFrame, text: str) -> pd.DataFrame:
    return df[_contains(df, "geo_ocean", text)]


def annual_series(search: pd.DataFrame) -> pd.DataFrame:
    """
    Annual d18O and Sr/Ca series, one per proxy and record.

    Either the primary series or its annual average is kept, never both;
    the primary series wins when it is itself annual.
    """
    df = search[~_variable(search).str.contains("d18O_sw", regex=False)]
    if "hasResolution_nominal" not in df.columns:
        return df.iloc[0:0]
    mask = df["hasResolution_nominal"].isin(list(ANNUAL))
    var = _variable(df)

    for _, idx in df.groupby("dataSetName").groups.items():
        rec_var = var.loc[idx]
        rec_mask = mask.loc[idx]
        for proxy in ("d18O", "SrCa"):
            proxy_rows = rec_var.str.contains(proxy, regex=False)
            if proxy_rows.sum() > 1 and rec_mask[proxy_rows].sum() > 1:
                drop = rec_var.index[rec_var == f"{proxy}_annual"]
                mask.loc[drop] = False

    return df[mask]


# name -> (description, function of (search, primary))
EXAMPLES = {
    "paired_g123": (
        "Paired records (Groups 1-3)",
        lambda search, primary: paired_series(primary),
    ),
    "monthly_bimonthly_g1246": (
        "Monthly-bimonthly records (Groups 1, 2, 4, 6)",
        lambda search, primary: by_groups(primary, (1, 2, 4, 6)),
    ),
    "within_5deg": (
        "Records within 5° of the equator",
        lambda search, primary: near_equator(primary, 5.0),
    ),
    "d18o": (
        "Primary d18O time series",
        lambda search, primary: by_variable(primary, "d18O"),
    ),
    "monthly": (
        "Monthly and monthly_uneven time series",
        lambda search, primary: by_resolution(primary, MONTHLY),
    ),
    "porites": (
        "Corals of the genus Porites",
        lambda search, primary: by_species(primary, "porites"),
    ),
    "atlantic": (
        "Records in the Atlantic Ocean",
        lambda search, primary: by_ocean(primary, "atlantic"),
    ),
    "annual": (
        "Annual d18O and Sr/Ca records (primary or annual average)",
        lambda search, primary: annual_series(search),
    ),
}


def run_examples(df: pd.DataFrame) -> dict[str, pd.DataFrame]:
    """Apply every example filter to the full time-series table."""
    search = search_series(df)
    primary = primary_series(search)
    return {name: func(search, primary) for name, (_, func) in EXAMPLES.items()}
