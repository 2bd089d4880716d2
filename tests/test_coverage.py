"""Tests for the record classifier, presence aggregation and axis-break remap."""

import numpy as np
import pandas as pd
import pytest

from coralhydro2k import (
    CoverageAggregator,
    Group,
    UnknownGroupError,
    build_coverage,
    classify_group,
    presence_years,
    remap_axis_break,
    resolution_tier,
)
from coralhydro2k.coverage import ChannelKind, calendar_years, year_span


# ============================================================================
# Classifier
# ============================================================================

class TestClassifyGroup:

    @pytest.mark.parametrize("raw, expected", [
        (1, Group.G1),
        (7.0, Group.G7),
        ("3", Group.G3),
        (" 5 ", Group.G5),
        ("6.0", Group.G6),
        (np.int64(2), Group.G2),
        (np.array([4.0]), Group.G4),
    ])
    def test_resolves_numbers_and_numeric_strings(self, raw, expected):
        assert classify_group("REC", raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "NA", " NA ", float("nan"), np.array([])])
    def test_missing_group_returns_none(self, raw):
        assert classify_group("REC", raw) is None

    @pytest.mark.parametrize("raw", ["8", 0, 8, -1, 2.5, "abc", np.array([1.0, 2.0])])
    def test_unknown_group_names_the_record(self, raw):
        with pytest.raises(UnknownGroupError, match="CH03BUN01"):
            classify_group("CH03BUN01", raw)

    def test_unknown_group_is_a_value_error(self):
        with pytest.raises(ValueError):
            classify_group("REC", "8")


class TestGroupChannels:

    def test_paired_groups_use_both_channels(self):
        for g in (Group.G1, Group.G2, Group.G3):
            assert set(g.channels) == {ChannelKind.D18O, ChannelKind.SRCA}

    def test_single_channel_groups(self):
        assert Group.G4.channels == (ChannelKind.D18O,)
        assert Group.G5.channels == (ChannelKind.D18O,)
        assert Group.G6.channels == (ChannelKind.SRCA,)
        assert Group.G7.channels == (ChannelKind.SRCA,)


class TestResolutionTier:

    @pytest.mark.parametrize("step, tier", [
        (1 / 12, 1),
        (0.083, 1),
        (1 / 6, 2),
        (0.25, 3),
        (1.0, 4),
        (2.0, 5),
        (5.0, 6),
        (10.0, 7),
    ])
    def test_tiers(self, step, tier):
        years = 1900 + step * np.arange(20)
        assert resolution_tier(years) == tier

    def test_too_few_points(self):
        assert resolution_tier([1950.0]) is None
        assert resolution_tier([]) is None

    def test_all_nan(self):
        assert resolution_tier([np.nan, np.nan, np.nan]) is None

    def test_year_span_uses_coverage_channels(self, make_record):
        rec = make_record(4, d18o_years=[1801.7, 1850.2], srca_years=[1500, 1990])
        assert year_span(rec, Group.G4) == (1801, 1850)
        assert year_span(make_record(6), Group.G6) is None


# ============================================================================
# Presence years
# ============================================================================

class TestPresenceYears:

    def test_no_gaps_fills_full_span(self):
        assert presence_years([2000, 2001, 2002]).tolist() == [2000, 2001, 2002]

    def test_gap_over_five_years_is_excluded(self):
        result = presence_years([1900, 1901, 1910])
        assert result.tolist() == [1900, 1901, 1910]
        assert not set(range(1902, 1910)) & set(result.tolist())

    def test_gaps_of_five_or_less_are_continuous(self):
        assert presence_years([1700, 1703, 1706]).tolist() == list(range(1700, 1707))
        assert presence_years([1700, 1705]).tolist() == list(range(1700, 1706))

    def test_single_year(self):
        assert presence_years([1955]).tolist() == [1955]
        assert presence_years([1955.9]).tolist() == [1955]

    def test_empty_and_all_nan(self):
        assert presence_years([]).size == 0
        assert presence_years([np.nan, np.nan]).size == 0

    def test_multiple_gaps_keep_segments_independent(self):
        years = [1800, 1802, 1820, 1821, 1850, 1853]
        expected = [1800, 1801, 1802, 1820, 1821, 1850, 1851, 1852, 1853]
        assert presence_years(years).tolist() == expected

    def test_sub_annual_samples_are_floored_and_deduplicated(self):
        monthly = 1990 + np.arange(36) / 12
        assert calendar_years(monthly).tolist() == [1990, 1991, 1992]
        assert presence_years(monthly).tolist() == [1990, 1991, 1992]

    def test_unsorted_input(self):
        assert presence_years([1706, 1700, 1703]).tolist() == list(range(1700, 1707))


# ============================================================================
# Aggregator
# ============================================================================

class TestAggregator:

    def test_count_matrix_shape_and_labels(self):
        result = build_coverage([])
        assert result.counts.shape == (2020, 7)
        assert result.counts.index[0] == 1 and result.counts.index[-1] == 2020
        assert list(result.counts.columns) == [1, 2, 3, 4, 5, 6, 7]
        assert int(result.counts.to_numpy().sum()) == 0

    def test_paired_record_counts_once_per_year(self, make_record):
        rec = make_record(2, d18o_years=[2000, 2001, 2002], srca_years=[2001, 2002])
        result = build_coverage([rec])
        col = result.counts[2]
        assert col.loc[2000:2002].tolist() == [1, 1, 1]
        assert int(col.sum()) == 3
        assert int(result.counts.drop(columns=2).to_numpy().sum()) == 0

    def test_channel_selection_by_group(self, make_record):
        iso = make_record(5, d18o_years=[1950], srca_years=[1800], name="ISO")
        elem = make_record(6, d18o_years=[1950], srca_years=[1800], name="ELEM")
        result = build_coverage([iso, elem])
        assert result.counts.loc[1950, 5] == 1
        assert result.counts.loc[1800, 5] == 0
        assert result.counts.loc[1800, 6] == 1
        assert result.counts.loc[1950, 6] == 0

    def test_gap_record_contribution(self, make_record):
        rec = make_record(4, d18o_years=[1900, 1901, 1910])
        counts = build_coverage([rec]).counts[4]
        assert counts.loc[1900:1910].tolist() == [1, 1, 0, 0, 0, 0, 0, 0, 0, 0, 1]

    def test_records_accumulate(self, make_record):
        recs = [make_record(7, srca_years=[1955], name=f"R{i}") for i in range(3)]
        assert build_coverage(recs).counts.loc[1955, 7] == 3

    def test_missing_channel_contributes_nothing(self, make_record):
        rec = make_record(4, d18o_years=None, srca_years=[1950, 1951])
        result = build_coverage([rec])
        assert int(result.counts.to_numpy().sum()) == 0
        assert result.failed == []
        assert result.records[0].span is None

    def test_na_group_is_excluded_and_reported(self, make_record):
        rec = make_record("NA", d18o_years=[1980, 1981], name="NoGroup")
        result = build_coverage([rec])
        assert result.failed == ["NoGroup"]
        assert result.records == []
        assert int(result.counts.to_numpy().sum()) == 0

    def test_unknown_group_halts(self, make_record):
        recs = [make_record(1, d18o_years=[1990]), make_record("8", name="BadRec")]
        with pytest.raises(UnknownGroupError, match="BadRec"):
            build_coverage(recs)

    def test_years_outside_matrix_are_dropped(self, make_record, capsys):
        rec = make_record(4, d18o_years=[2018, 2019, 2020, 2021, 2022])
        result = build_coverage([rec])
        assert int(result.counts[4].sum()) == 3
        assert "not counted" in capsys.readouterr().out

    def test_result_is_read_only(self, make_record):
        result = build_coverage([make_record(1, d18o_years=[1990])])
        with pytest.raises(ValueError):
            result.counts.to_numpy()[0, 0] = 5

    def test_window_returns_independent_copy(self, make_record):
        result = build_coverage([make_record(1, d18o_years=[1990])])
        window = result.window(1980, 2000)
        window.loc[1990, 1] = 99
        assert result.counts.loc[1990, 1] == 1
        assert len(window) == 21

    def test_add_after_finish_is_rejected(self, make_record):
        agg = CoverageAggregator()
        agg.finish()
        with pytest.raises(RuntimeError):
            agg.add(make_record(1, d18o_years=[1990]))

    def test_series_count_counts_each_channel_type(self, make_record):
        recs = [
            make_record(1, d18o_years=[1990], srca_years=[1990], name="A"),
            make_record(4, d18o_years=[1990], name="B"),
            make_record(6, srca_years=[1990], name="C"),
        ]
        assert build_coverage(recs).n_series == 4

    def test_recomputation_is_deterministic(self, make_record):
        recs = [
            make_record(1, d18o_years=[1600, 1601, 1650], srca_years=[1602], name="A"),
            make_record(7, srca_years=[1700, 1703, 1706], name="B"),
        ]
        first = build_coverage(recs).counts
        second = build_coverage(recs).counts
        pd.testing.assert_frame_equal(first, second)

    def test_resolution_tier_is_recorded(self, make_record):
        monthly = 1950 + np.arange(120) / 12
        item = build_coverage([make_record(1, d18o_years=monthly)]).records[0]
        assert item.resolution == 1
        assert item.span == (1950, 1959)

    def test_resolution_counts_per_tier(self, make_record):
        recs = [
            make_record(1, d18o_years=1950 + np.arange(120) / 12, name="A"),
            make_record(4, d18o_years=[1900, 1901, 1902], name="B"),
            make_record(7, srca_years=[1700, 1701], name="C"),
            make_record(6, srca_years=[1800], name="D"),
        ]
        tiers = build_coverage(recs).resolution_counts()
        assert tiers.index.tolist() == [1, 2, 3, 4, 5, 6, 7]
        assert tiers.tolist() == [1, 0, 0, 2, 0, 0, 0]


# ============================================================================
# Axis-break remap
# ============================================================================

class TestRemapAxisBreak:

    @pytest.fixture
    def inset(self):
        years = np.arange(1, 1751)
        counts = np.tile(years[:, None], (1, 7))
        return years, counts

    def test_interior_removed_and_shifted(self, inset):
        years, counts = inset
        broken = remap_axis_break(years, counts, (400, 800), ticks=range(0, 1751, 200))
        assert len(broken.years) == 1750 - (800 - 400)
        assert np.all(np.diff(broken.years) > 0)
        assert np.array_equal(broken.years, np.arange(1, 1351))
        assert broken.counts.shape == (1350, 7)
        # year 801 lands on position 401
        pos = np.flatnonzero(broken.years == 401)
        assert broken.counts[pos, 0].tolist() == [801]

    def test_break_start_is_followed_by_year_after_break(self, inset):
        years, counts = inset
        broken = remap_axis_break(years, counts, (400, 800))
        pos = np.flatnonzero(broken.years == 400)
        assert broken.counts[pos, 0].tolist() == [400]
        assert 800 not in broken.counts[:, 0]
        assert broken.shift == 400

    def test_tick_mapping(self, inset):
        years, counts = inset
        broken = remap_axis_break(years, counts, (400, 800), ticks=range(0, 1751, 200))
        assert broken.tick_positions == {
            0: 0, 200: 200, 400: 400, 800: 400,
            1000: 600, 1200: 800, 1400: 1000, 1600: 1200,
        }
        assert 600 not in broken.tick_positions

    def test_input_matrix_is_not_modified(self, inset):
        years, counts = inset
        before = counts.copy()
        broken = remap_axis_break(years, counts, (400, 800))
        broken.counts[:] = 0
        assert np.array_equal(counts, before)

    def test_works_on_count_matrix_window(self, make_record):
        result = build_coverage([make_record(4, d18o_years=[500, 1000])])
        inset = result.window(1, 1750)
        broken = remap_axis_break(inset.index.to_numpy(), inset.to_numpy(), (400, 800))
        assert broken.counts.shape == (1350, 7)
        assert broken.counts[:, 3].sum() == 1
        assert result.counts.loc[500, 4] == 1

    def test_reversed_break_is_normalised(self, inset):
        years, counts = inset
        assert remap_axis_break(years, counts, (800, 400)).xbreak == (400, 800)

    def test_rejects_mismatched_rows(self):
        with pytest.raises(ValueError):
            remap_axis_break(np.arange(10), np.zeros((9, 7)), (2, 5))

    def test_rejects_empty_break(self):
        with pytest.raises(ValueError):
            remap_axis_break(np.arange(10), np.zeros((10, 7)), (5, 5))
