"""
database.py
===========
Load a serialized CoralHydro2k database into a pandas table with one row
per time series, and regroup the rows into one CoralRecord per dataset.

Supported files
---------------
    CoralHydro2k*.pkl   pickled {"TS": [dict, ...]} or a bare list of dicts
    CoralHydro2k*.mat   MATLAB struct array named TS (v7 or older; v7.3
                        HDF5 files are not readable by scipy)
"""

from __future__ import annotations

import os
import pickle

import numpy as np
import pandas as pd
from scipy.io import loadmat

from .coverage import Channel, ChannelKind, CoralRecord

ARRAY_FIELDS = ("year", "paleoData_values")

REQUIRED_COLUMNS = (
    "dataSetName",
    "paleoData_variableName",
    "paleoData_coralHydro2kGroup",
    "year",
    "paleoData_values",
    "geo_latitude",
    "geo_longitude",
)


def _mat_struct_to_dict(entry) -> dict:
    return {name: getattr(entry, name) for name in entry._fieldnames}


def _read_ts_entries(filepath: str) -> list[dict]:
    ext = os.path.splitext(filepath)[1].lower()
    if ext == ".pkl":
        with open(filepath, "rb") as fh:
            obj = pickle.load(fh)
        if isinstance(obj, dict):
            obj = obj["TS"]
        return [dict(ts) for ts in obj]
    if ext == ".mat":
        mat = loadmat(filepath, squeeze_me=True, struct_as_record=False)
        ts = np.atleast_1d(mat["TS"])
        return [_mat_struct_to_dict(entry) for entry in ts]
    raise ValueError(f"Unsupported database format: {filepath}")


def _as_float_array(value) -> np.ndarray:
    if value is None:
        return np.empty(0, dtype=float)
    arr = np.asarray(value)
    if arr.dtype.kind in "OUS":
        arr = pd.to_numeric(pd.Series(arr.ravel()), errors="coerce").to_numpy()
    return np.atleast_1d(arr.astype(float)).ravel()


def ts_table(entries: list[dict]) -> pd.DataFrame:
    """Build the time-series table from a list of TS dictionaries."""
    df = pd.DataFrame(entries)
    for col in REQUIRED_COLUMNS:
        if col not in df.columns:
            df[col] = None
    for col in ARRAY_FIELDS:
        df[col] = df[col].map(_as_float_array)
    df["geo_latitude"] = pd.to_numeric(df["geo_latitude"], errors="coerce")
    df["geo_longitude"] = pd.to_numeric(df["geo_longitude"], errors="coerce")
    df["paleoData_variableName"] = df["paleoData_variableName"].fillna("").astype(str)
    return df


def load_database(filepath: str) -> pd.DataFrame:
    """
    Read the database file and return the time-series table.
    Columns: see REQUIRED_COLUMNS, plus every other TS metadata field.
    """
    df = ts_table(_read_ts_entries(filepath))

    print(f"  Loaded: {os.path.basename(filepath)}")
    print(
        f"  Time series: {len(df)}, Records: {df['dataSetName'].nunique()}"
    )
    counts = df["paleoData_variableName"].value_counts()
    for name in (ChannelKind.D18O.value, ChannelKind.SRCA.value):
        print(f"  {name}: {counts.get(name, 0)} series")

    return df


def _channel(rows: pd.DataFrame, kind: ChannelKind) -> Channel | None:
    match = rows[rows["paleoData_variableName"] == kind.value]
    if match.empty:
        return None
    first = match.iloc[0]
    years, values = first["year"], first["paleoData_values"]
    if values.size != years.size:
        # values without matching years carry no time information
        values = np.full(years.shape, np.nan)
    return Channel(years=years, values=values)


def group_records(df: pd.DataFrame) -> list[CoralRecord]:
    """One CoralRecord per dataSetName, in sorted name order."""
    records = []
    for name, rows in df.groupby("dataSetName", sort=True):
        first = rows.iloc[0]
        records.append(
            CoralRecord(
                name=str(name),
                group=first["paleoData_coralHydro2kGroup"],
                latitude=float(first["geo_latitude"]),
                longitude=float(first["geo_longitude"]),
                d18o=_channel(rows, ChannelKind.D18O),
                srca=_channel(rows, ChannelKind.SRCA),
            )
        )
    return records
