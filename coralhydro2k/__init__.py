"""Shared code for the CoralHydro2k figure and filter scripts."""

from .coverage import (
    BrokenAxis,
    Channel,
    ChannelKind,
    ClassifiedRecord,
    CoralRecord,
    CoverageAggregator,
    CoverageResult,
    Group,
    UnknownGroupError,
    build_coverage,
    classify_group,
    presence_years,
    remap_axis_break,
    resolution_tier,
)
from .database import group_records, load_database

__version__ = "1.0.0"
