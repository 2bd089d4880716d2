"""
coverage.py
===========
Temporal-coverage aggregation for the CoralHydro2k database.

Three steps, run once per database:

    classify_group / resolution_tier   which of the 7 groups a record
                                       belongs to, and how finely it is
                                       sampled
    CoverageAggregator                 per-year presence of every record,
                                       accumulated into a year x group
                                       count matrix
    remap_axis_break                   cut an interval out of a year axis
                                       for the broken-axis inset

Presence rule
-------------
Sample years are floored to calendar years. Runs of years whose spacing is
at most MAX_GAP_YEARS count as continuous; a longer gap splits the record
into independent segments and the gap interior is not counted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable

import numpy as np
import pandas as pd

MAX_GAP_YEARS: int = 5
FIRST_YEAR: int = 1
LAST_YEAR: int = 2020

MISSING_GROUP_TOKENS = ("", "NA")

# upper bounds of mean sample spacing (years) for resolution tiers 1-6;
# tier 7 is anything coarser. Sampling years stored to 3 decimals land on
# the rounded bound.
RESOLUTION_LIMITS = (
    (1 / 12, round(1 / 12, 3)),
    (1 / 6, round(1 / 6, 3)),
    (0.25,),
    (1.0,),
    (3.0,),
    (5.0,),
)


class UnknownGroupError(ValueError):
    """A record carries a group label outside 1-7."""

    def __init__(self, record_name: str, group):
        self.record_name = record_name
        self.group = group
        super().__init__(f"Missing group: [{record_name}] (got {group!r})")


class ChannelKind(str, Enum):
    D18O = "d18O"
    SRCA = "SrCa"


class Group(IntEnum):
    """CoralHydro2k record groups (Table 1 of the database descriptor)."""

    G1 = 1
    G2 = 2
    G3 = 3
    G4 = 4
    G5 = 5
    G6 = 6
    G7 = 7

    @property
    def channels(self) -> tuple[ChannelKind, ...]:
        """Channels that define the record's temporal coverage."""
        if self in (Group.G1, Group.G2, Group.G3):
            return (ChannelKind.D18O, ChannelKind.SRCA)
        if self in (Group.G4, Group.G5):
            return (ChannelKind.D18O,)
        return (ChannelKind.SRCA,)

    @property
    def label(self) -> str:
        return f"Group {int(self)}"


@dataclass
class Channel:
    years: np.ndarray
    values: np.ndarray

    def __post_init__(self):
        self.years = np.asarray(self.years, dtype=float).ravel()
        self.values = np.asarray(self.values, dtype=float).ravel()
        if self.years.shape != self.values.shape:
            raise ValueError(
                f"year/value length mismatch: {self.years.size} vs {self.values.size}"
            )

    def __len__(self) -> int:
        return int(self.years.size)


@dataclass
class CoralRecord:
    """One dataset of the database; absent channels are None."""

    name: str
    group: object = None
    latitude: float = float("nan")
    longitude: float = float("nan")
    d18o: Channel | None = None
    srca: Channel | None = None

    def channel(self, kind: ChannelKind) -> Channel | None:
        if kind is ChannelKind.D18O:
            return self.d18o
        return self.srca

    @property
    def n_series(self) -> int:
        """Primary time series present in this record (d18O and Sr/Ca)."""
        return int(self.d18o is not None) + int(self.srca is not None)


@dataclass
class ClassifiedRecord:
    record: CoralRecord
    group: Group
    span: tuple[int, int] | None
    resolution: int | None
    presence: np.ndarray = field(repr=False, default_factory=lambda: np.empty(0, int))


# ──────────────────────────────────────────────
# Record Classifier
# ──────────────────────────────────────────────


def is_missing_group(group) -> bool:
    if group is None:
        return True
    if isinstance(group, str):
        return group.strip() in MISSING_GROUP_TOKENS
    if isinstance(group, (float, np.floating)) and math.isnan(group):
        return True
    # empty MATLAB cells arrive as zero-length arrays
    return np.size(group) == 0


def classify_group(name: str, group) -> Group | None:
    """
    Resolve a raw group label to a Group.

    Returns None for an empty/"NA" label (the caller excludes the record).
    Raises UnknownGroupError for anything else that is not 1-7.
    """
    if is_missing_group(group):
        return None
    value = group
    if isinstance(value, np.ndarray):
        if value.size != 1:
            raise UnknownGroupError(name, group)
        value = value.item()
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise UnknownGroupError(name, group) from None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise UnknownGroupError(name, group) from None
    if not number.is_integer():
        raise UnknownGroupError(name, group)
    try:
        return Group(int(number))
    except ValueError:
        raise UnknownGroupError(name, group) from None


def coverage_years(record: CoralRecord, group: Group) -> np.ndarray:
    """Raw year values of every coverage channel of the record."""
    parts = [
        ch.years
        for ch in (record.channel(kind) for kind in group.channels)
        if ch is not None
    ]
    if not parts:
        return np.empty(0, dtype=float)
    return np.concatenate(parts)


def calendar_years(years) -> np.ndarray:
    """Floor to calendar years, drop NaN, deduplicate and sort."""
    arr = np.asarray(years, dtype=float).ravel()
    arr = arr[~np.isnan(arr)]
    return np.unique(np.floor(arr)).astype(int)


def year_span(record: CoralRecord, group: Group) -> tuple[int, int] | None:
    years = calendar_years(coverage_years(record, group))
    if years.size == 0:
        return None
    return int(years[0]), int(years[-1])


def resolution_channel(record: CoralRecord, group: Group) -> Channel | None:
    """Channel used for the resolution tier; paired records use the longer one."""
    if group in (Group.G4, Group.G5):
        return record.d18o
    if group in (Group.G6, Group.G7):
        return record.srca
    srca, d18o = record.srca, record.d18o
    if srca is None or d18o is None:
        return srca if d18o is None else d18o
    return srca if len(srca) >= len(d18o) else d18o


def resolution_tier(years) -> int | None:
    """
    Map the mean sample spacing (years) to the 7 resolution tiers reported
    with Figure 1: monthly, bimonthly, quarterly, annual, <=3 yr, <=5 yr,
    coarser.
    """
    arr = np.asarray(years, dtype=float).ravel()
    if arr.size < 2:
        return None
    diffs = np.diff(arr)
    if np.all(np.isnan(diffs)):
        return None
    avg = float(np.nanmean(diffs))
    for tier, limits in enumerate(RESOLUTION_LIMITS, start=1):
        if any(avg <= lim or math.isclose(avg, lim, rel_tol=1e-9) for lim in limits):
            return tier
    return len(RESOLUTION_LIMITS) + 1


# ──────────────────────────────────────────────
# Year-Presence Aggregator
# ──────────────────────────────────────────────


def presence_years(years, max_gap: int = MAX_GAP_YEARS) -> np.ndarray:
    """
    Calendar years a record is considered to have data.

    >>> presence_years([1900, 1901, 1910]).tolist()
    [1900, 1901, 1910]
    >>> presence_years([1700, 1703, 1706]).tolist()
    [1700, 1701, 1702, 1703, 1704, 1705, 1706]
    """
    years = calendar_years(years)
    if years.size < 2:
        return years
    gaps = np.flatnonzero(np.diff(years) > max_gap)
    starts = np.concatenate(([0], gaps + 1))
    ends = np.concatenate((gaps, [years.size - 1]))
    segments = [
        np.arange(years[s], years[e] + 1, dtype=int) for s, e in zip(starts, ends)
    ]
    return np.concatenate(segments)


class CoverageAggregator:
    """
    Owns the year x group count matrix for one aggregation pass.

    Usage
    -----
        agg = CoverageAggregator()
        for rec in records:
            agg.add(rec)
        result = agg.finish()
    """

    def __init__(self, first_year: int = FIRST_YEAR, last_year: int = LAST_YEAR):
        self.first_year = first_year
        self.last_year = last_year
        self._counts = np.zeros((last_year - first_year + 1, len(Group)), dtype=int)
        self.failed: list[str] = []
        self.classified: list[ClassifiedRecord] = []
        self.n_series = 0
        self.n_out_of_range = 0
        self._finished = False

    def add(self, record: CoralRecord) -> ClassifiedRecord | None:
        if self._finished:
            raise RuntimeError("aggregation pass already finished")
        group = classify_group(record.name, record.group)
        if group is None:
            self.failed.append(record.name)
            return None

        presence = presence_years(coverage_years(record, group))
        in_range = (presence >= self.first_year) & (presence <= self.last_year)
        self.n_out_of_range += int((~in_range).sum())
        rows = presence[in_range] - self.first_year
        # presence years are unique, so each cell gets at most +1 per record
        self._counts[rows, int(group) - 1] += 1

        res_channel = resolution_channel(record, group)
        classified = ClassifiedRecord(
            record=record,
            group=group,
            span=year_span(record, group),
            resolution=resolution_tier(res_channel.years) if res_channel else None,
            presence=presence,
        )
        self.classified.append(classified)
        self.n_series += record.n_series
        return classified

    def finish(self) -> "CoverageResult":
        self._finished = True
        counts = self._counts.copy()
        counts.flags.writeable = False
        frame = pd.DataFrame(
            counts,
            index=pd.RangeIndex(self.first_year, self.last_year + 1, name="year"),
            columns=pd.Index([int(g) for g in Group], name="group"),
        )
        if self.n_out_of_range:
            print(
                f"  ⚠  {self.n_out_of_range} presence years outside "
                f"{self.first_year}–{self.last_year} CE not counted"
            )
        return CoverageResult(
            counts=frame,
            failed=list(self.failed),
            records=list(self.classified),
            n_series=self.n_series,
        )


@dataclass
class CoverageResult:
    counts: pd.DataFrame
    failed: list[str]
    records: list[ClassifiedRecord]
    n_series: int

    def window(self, first: int, last: int) -> pd.DataFrame:
        """Copy of the count rows for years first..last inclusive."""
        return self.counts.loc[first:last].copy()

    def resolution_counts(self) -> pd.Series:
        """Classified records per resolution tier (1-7); records without a tier are left out."""
        tiers = pd.Series([item.resolution for item in self.records], dtype="Int64").dropna()
        return (
            tiers.astype(int).value_counts()
            .reindex(range(1, len(RESOLUTION_LIMITS) + 2), fill_value=0)
            .rename_axis("resolution")
            .astype(int)
        )


def build_coverage(records: Iterable[CoralRecord]) -> CoverageResult:
    agg = CoverageAggregator()
    for record in records:
        agg.add(record)
    return agg.finish()


# ──────────────────────────────────────────────
# Axis-Break Remapper
# ──────────────────────────────────────────────


@dataclass
class BrokenAxis:
    years: np.ndarray
    counts: np.ndarray
    tick_positions: dict[int, int]
    xbreak: tuple[int, int]

    @property
    def shift(self) -> int:
        return self.xbreak[1] - self.xbreak[0]


def remap_axis_break(years, counts, xbreak, ticks=None) -> BrokenAxis:
    """
    Remove the interior of *xbreak* = (lo, hi) from a year axis.

    Rows with lo < year <= hi are dropped and years > hi move down by
    hi - lo, so the output positions are strictly increasing and lo is
    followed directly by the year after hi. *ticks* (original year values)
    are mapped onto the same axis: ticks strictly inside the break are
    dropped, lo and hi both land on position lo.
    """
    lo, hi = int(min(xbreak)), int(max(xbreak))
    if lo == hi:
        raise ValueError(f"empty axis break: {xbreak!r}")
    years = np.asarray(years)
    counts = np.array(counts, copy=True)
    if counts.shape[0] != years.size:
        raise ValueError(
            f"count rows ({counts.shape[0]}) do not match years ({years.size})"
        )
    keep = ~((years > lo) & (years <= hi))
    new_years = years[keep].astype(int)
    new_years[new_years > hi] -= hi - lo

    tick_positions: dict[int, int] = {}
    for t in ticks if ticks is not None else ():
        t = int(t)
        if lo < t < hi:
            continue
        tick_positions[t] = t - (hi - lo) if t >= hi else t

    return BrokenAxis(
        years=new_years,
        counts=counts[keep],
        tick_positions=tick_positions,
        xbreak=(lo, hi),
    )
