# Datei: plot_figure1_from_db.py
# Figure 1 of the CoralHydro2k database descriptor:
#   (a) all record sites, coloured by group
#   (b) temporal coverage of the database (stacked areas) with a pre-1750 inset
import os
import sys
import argparse
from collections import defaultdict

import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from matplotlib.patches import Patch
from cartopy.crs import Robinson, PlateCarree

from coralhydro2k import (
    Group,
    UnknownGroupError,
    build_coverage,
    group_records,
    load_database,
    remap_axis_break,
)


class Tee:
    """Schreibt gleichzeitig auf stdout und in eine Datei."""

    def __init__(self, filepath):
        self.file = open(filepath, "w", encoding="utf-8")
        self.stdout = sys.stdout
        sys.stdout = self

    def write(self, data):
        self.stdout.write(data)
        self.file.write(data)

    def flush(self):
        self.stdout.flush()
        self.file.flush()

    def close(self):
        sys.stdout = self.stdout
        self.file.close()


SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
OUTPUT_DIR = os.path.join(SCRIPT_DIR, "plots")
REPORT_DIR = os.path.join(SCRIPT_DIR, "report")
DATABASE_FILE = os.path.join(SCRIPT_DIR, "..", "data", "CoralHydro2k1_0_0.pkl")

# ──────────────────────────────────────────────
# Farben und Formatierung
# ──────────────────────────────────────────────
GROUP_COLORS = [
    "#11538d",  # USAFA Blue        (G1)
    "#1f88e5",  # Bleu de France    (G2)
    "#7bb9ef",  # Aero              (G3)
    "#cc9900",  # Lemon Curry       (G4)
    "#ffbf00",  # Amber             (G5)
    "#d81c60",  # Ruby              (G6)
    "#ec6f9d",  # Cyclamen          (G7)
]
GROUP_LABELS = [g.label for g in Group]

COAST_COLOR = "#4d4d4d"
POINT_SIZE = 60
MARKER_WIDTH = 2.0

CENTER_LON = -160  # Mittelmeridian der Karte
MAP_LAT = (-50, 50)

FIGURE_SIZE = (8, 5)  # inches
DPI = 300
FONT_SIZE = 14
LABEL_MULT = 1.05
TITLE_MULT = 1.2

# Coverage plot
MAIN_YEARS = (1600, 2020)
MAIN_YMAX = 150
INSET_YEARS = (1, 1750)
INSET_YMAX = 15
INSET_POS = [0.142, 0.605, 0.5, 0.302]  # figure fraction
INSET_TICK_STEP = 200
XBREAK = (400, 800)  # Achsenbruch im Inset

# Record-type brackets under the map legend (figure fraction)
BRACKETS = [
    ("Paired Sr/Ca-$\\delta^{18}$O records", 0.1097, 0.4553),
    ("$\\delta^{18}$O-only records", 0.4583, 0.6875),
    ("Sr/Ca-only records", 0.6905, 0.9197),
]
RESOLUTION_NAMES = [
    "monthly", "bimonthly", "quarterly", "annual", "≤3 yr", "≤5 yr", ">5 yr",
]

BRACKET_Y = 0.2
BRACKET_TICK = 0.02


def save_figure(fig, output_filename):
    jpg_path = output_filename + ".jpg"
    svg_path = output_filename + ".svg"
    fig.savefig(jpg_path, dpi=DPI, bbox_inches="tight")
    fig.savefig(svg_path, bbox_inches="tight")
    plt.close(fig)
    print(f"  ✓ Saved: {jpg_path}")
    print(f"  ✓ Saved: {svg_path}")


def group_legend_handles():
    return [
        Patch(facecolor=color, edgecolor="none", label=label)
        for color, label in zip(GROUP_COLORS, GROUP_LABELS)
    ]


# ──────────────────────────────────────────────
# (a) Site map
# ──────────────────────────────────────────────


def plot_site_map(result, output_filename):
    fig = plt.figure(figsize=FIGURE_SIZE)
    ax = fig.add_subplot(111, projection=Robinson(central_longitude=CENTER_LON))
    ax.set_extent([-180, 180, MAP_LAT[0], MAP_LAT[1]], crs=PlateCarree())
    ax.coastlines(color=COAST_COLOR)
    ax.gridlines(draw_labels=True, linewidth=0.5, color="#cccccc")

    # Gruppe 7 zuerst, Gruppe 1 oben
    records = sorted(result.records, key=lambda r: int(r.group), reverse=True)
    for item in records:
        rec = item.record
        ax.scatter(
            rec.longitude,
            rec.latitude,
            s=POINT_SIZE,
            facecolors="none",
            edgecolors=GROUP_COLORS[int(item.group) - 1],
            linewidths=MARKER_WIDTH,
            transform=PlateCarree(),
        )

    ax.set_title(
        f"(a) CoralHydro2k database - {result.n_series} total timeseries",
        loc="left",
        fontsize=FONT_SIZE * TITLE_MULT,
    )
    fig.legend(
        handles=group_legend_handles(),
        loc="lower center",
        bbox_to_anchor=(0.515, BRACKET_Y + 0.01),
        ncol=7,
        frameon=False,
        fontsize=FONT_SIZE * 0.7,
        handlelength=1.2,
        columnspacing=0.8,
    )

    for text, left, right in BRACKETS:
        for xs, ys in (
            ([left, right], [BRACKET_Y, BRACKET_Y]),
            ([left, left], [BRACKET_Y, BRACKET_Y + BRACKET_TICK]),
            ([right, right], [BRACKET_Y, BRACKET_Y + BRACKET_TICK]),
        ):
            fig.add_artist(Line2D(xs, ys, color="black", linewidth=1,
                                  transform=fig.transFigure))
        fig.text(
            (left + right) / 2,
            BRACKET_Y - 0.02,
            text,
            ha="center",
            va="top",
            fontsize=FONT_SIZE * 0.7,
        )

    save_figure(fig, output_filename)


# ──────────────────────────────────────────────
# (b) Temporal coverage
# ──────────────────────────────────────────────


def inset_tick_labels(broken):
    """Tick positions and labels on the remapped axis; the break position stays blank."""
    by_position = defaultdict(list)
    for year, position in broken.tick_positions.items():
        by_position[position].append(year)
    positions = sorted(p for p in by_position if p <= broken.years.max())
    labels = [
        "" if len(by_position[p]) > 1 else str(by_position[p][0]) for p in positions
    ]
    return positions, labels


def plot_coverage(result, output_filename):
    fig = plt.figure(figsize=FIGURE_SIZE)
    ax = fig.add_subplot(111)

    main = result.window(*MAIN_YEARS)
    ax.stackplot(
        main.index, main.to_numpy().T, colors=GROUP_COLORS, labels=GROUP_LABELS
    )

    # Markierung, wo das Inset endet
    ax.plot([INSET_YEARS[1], 1877], [20, 91], "k-", linewidth=1)
    ax.plot([INSET_YEARS[1], INSET_YEARS[1]], [0, 20], "k-", linewidth=1)

    ax.legend(
        loc="lower center",
        bbox_to_anchor=(0.5, 1.0),
        ncol=7,
        frameon=False,
        fontsize=FONT_SIZE * 0.7,
        handlelength=1.2,
        columnspacing=0.8,
    )
    ax.set_xlim(*MAIN_YEARS)
    ax.set_ylim(0, MAIN_YMAX)
    ax.set_yticks(range(0, MAIN_YMAX + 1, 50))
    ax.set_xlabel("Year", fontsize=FONT_SIZE * LABEL_MULT)
    ax.set_ylabel("# Records", fontsize=FONT_SIZE * LABEL_MULT)
    ax.tick_params(labelsize=FONT_SIZE)

    # ── Inset 1–1750 mit Achsenbruch ─────────────────
    inset = result.window(*INSET_YEARS)
    broken = remap_axis_break(
        inset.index.to_numpy(),
        inset.to_numpy(),
        XBREAK,
        ticks=range(0, INSET_YEARS[1] + 1, INSET_TICK_STEP),
    )
    iax = fig.add_axes(INSET_POS)
    iax.stackplot(broken.years, broken.counts.T, colors=GROUP_COLORS)
    iax.set_xlim(0, broken.years.max())
    iax.set_ylim(0, INSET_YMAX)
    positions, labels = inset_tick_labels(broken)
    iax.set_xticks(positions)
    iax.set_xticklabels(labels)
    iax.set_yticks([0, 5, 10])
    iax.yaxis.tick_right()
    iax.tick_params(labelsize=FONT_SIZE * 0.75, pad=1)

    lo = broken.xbreak[0]
    iax.text(lo - 11, 0, "//", fontsize=FONT_SIZE, va="center")
    iax.text(lo - 6, INSET_YMAX - 0.25, "//", fontsize=FONT_SIZE, va="center")
    iax.text(50, 12.5, "(b) Temporal coverage", fontsize=FONT_SIZE * TITLE_MULT)

    save_figure(fig, output_filename)


# ──────────────────────────────────────────────
# Hauptprogramm
# ──────────────────────────────────────────────


def run(database, report_path):
    print("=" * 60)
    print("CoralHydro2k – Figure 1 (site map, temporal coverage)")
    print("=" * 60)

    if not os.path.exists(database):
        print(f"  ⚠  Database not found: {database}")
        sys.exit(1)

    print("\n[1/3] Loading database …")
    df = load_database(database)
    records = group_records(df)

    print("\n[2/3] Counting records with data per year …")
    try:
        result = build_coverage(records)
    except UnknownGroupError as e:
        print(f"  ✗ {e}")
        sys.exit(1)

    print(f"  Records classified: {len(result.records)}")
    print(f"  Time series: {result.n_series}")
    if result.failed:
        print(f"  ⚠  {len(result.failed)} records without group:")
        for name in result.failed:
            print(f"     - {name}")
    peak = result.counts.sum(axis=1)
    print(f"  Max. records in one year: {peak.max()} ({peak.idxmax()} CE)")
    print("  Records per resolution tier:")
    for tier, n in result.resolution_counts().items():
        print(f"     {tier} ({RESOLUTION_NAMES[tier - 1]}): {n}")

    print("\n[3/3] Generating plots …")
    plot_site_map(result, os.path.join(OUTPUT_DIR, "figure1a_site_map"))
    plot_coverage(result, os.path.join(OUTPUT_DIR, "figure1b_temporal_coverage"))

    print("\n" + "=" * 60)
    print(f"Done! Plots saved to '{OUTPUT_DIR}/'.")
    print(f"Report saved: {report_path}")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="CoralHydro2k Figure 1")
    parser.add_argument("--database", default=DATABASE_FILE)
    args = parser.parse_args()

    for d in (OUTPUT_DIR, REPORT_DIR):
        os.makedirs(d, exist_ok=True)

    report_path = os.path.join(REPORT_DIR, "report.txt")
    tee = Tee(report_path)
    try:
        run(args.database, report_path)
    finally:
        tee.close()


if __name__ == "__main__":
    main()
