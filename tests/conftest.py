"""
Shared fixtures for the CoralHydro2k tests.

Provides a small synthetic time-series table shaped like the database TS
structure, plus a factory for single CoralRecord values.
"""

import numpy as np
import pytest

from coralhydro2k import Channel, CoralRecord
from coralhydro2k.database import ts_table


def _ts(name, variable, group, years, lat=0.0, lon=150.0, **meta):
    years = np.asarray(years, dtype=float)
    entry = {
        "dataSetName": name,
        "paleoData_variableName": variable,
        "paleoData_coralHydro2kGroup": group,
        "year": years,
        "paleoData_values": np.linspace(-5.0, -4.0, years.size),
        "geo_latitude": lat,
        "geo_longitude": lon,
    }
    entry.update(meta)
    return entry


@pytest.fixture
def ts_entries():
    """Raw TS dictionaries: paired, d18O-only, Sr/Ca-only and NA records."""
    monthly = 1950 + np.arange(600) / 12
    return [
        _ts("PairedA", "d18O", 1, monthly, lat=-2.0, lon=160.0,
            hasResolution_nominal="monthly", paleoData_archiveSpecies="Porites lutea",
            geo_ocean="Pacific"),
        _ts("PairedA", "SrCa", 1, monthly, lat=-2.0, lon=160.0,
            hasResolution_nominal="monthly", paleoData_archiveSpecies="Porites lutea",
            geo_ocean="Pacific"),
        _ts("PairedA", "d18O_annual", 1, np.arange(1950, 2000), lat=-2.0, lon=160.0,
            hasResolution_nominal="annual", paleoData_archiveSpecies="Porites lutea",
            geo_ocean="Pacific"),
        _ts("PairedA", "year", 1, monthly, lat=-2.0, lon=160.0),
        _ts("IsoB", "d18O", "4", [1900.5, 1901.2, 1910.7], lat=18.0, lon=-64.0,
            hasResolution_nominal="annual", paleoData_archiveSpecies="Diploria strigosa",
            geo_ocean="Atlantic"),
        _ts("IsoB", "d18O_annual", "4", [1900, 1901, 1910], lat=18.0, lon=-64.0,
            hasResolution_nominal="annual", paleoData_archiveSpecies="Diploria strigosa",
            geo_ocean="Atlantic"),
        _ts("IsoB", "d18OUncertainty", "4", [1900, 1901, 1910], lat=18.0, lon=-64.0),
        _ts("SrC", "SrCa", 7, [1700, 1703, 1706], lat=25.0, lon=120.0,
            hasResolution_nominal="annual_uneven", paleoData_archiveSpecies="Porites sp.",
            geo_ocean="Pacific"),
        _ts("NoGroup", "d18O", "NA", [1980, 1981], lat=4.0, lon=40.0,
            hasResolution_nominal="monthly", geo_ocean="Indian"),
    ]


@pytest.fixture
def ts_df(ts_entries):
    return ts_table(ts_entries)


@pytest.fixture
def make_record():
    """Factory: make_record(group, d18o_years=None, srca_years=None, name=...)."""

    def _make(group, d18o_years=None, srca_years=None, name="REC01"):
        def channel(years):
            if years is None:
                return None
            years = np.asarray(years, dtype=float)
            return Channel(years=years, values=np.zeros(years.size))

        return CoralRecord(
            name=name,
            group=group,
            latitude=0.0,
            longitude=0.0,
            d18o=channel(d18o_years),
            srca=channel(srca_years),
        )

    return _make
