# Datei: filter_examples.py
# Beispiele zum Filtern der CoralHydro2k-Zeitreihen nach Metadaten
# Basiert auf: plot_figure1_from_db.py

import os
import sys
import argparse

from coralhydro2k import load_database
from coralhydro2k.filters import EXAMPLES, run_examples, search_series, primary_series


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
REPORT_DIR = os.path.join(SCRIPT_DIR, "report")
DATABASE_FILE = os.path.join(SCRIPT_DIR, "..", "data", "CoralHydro2k1_0_0.pkl")

# Spalten der CSV-Zusammenfassung (fehlende werden ausgelassen)
SUMMARY_COLUMNS = [
    "dataSetName",
    "paleoData_variableName",
    "paleoData_coralHydro2kGroup",
    "hasResolution_nominal",
    "minYear",
    "maxYear",
    "geo_latitude",
    "geo_longitude",
    "geo_siteName",
    "geo_ocean",
    "paleoData_archiveSpecies",
]


def write_summary(df, name):
    cols = [c for c in SUMMARY_COLUMNS if c in df.columns]
    path = os.path.join(REPORT_DIR, f"{name}.csv")
    df[cols].to_csv(path, index=False)
    return path


def run(database, report_path):
    print("=" * 60)
    print("CoralHydro2k – Filter Examples")
    print("=" * 60)

    if not os.path.exists(database):
        print(f"  ⚠  Database not found: {database}")
        sys.exit(1)

    df = load_database(database)
    search = search_series(df)
    primary = primary_series(search)
    print(f"  Searchable series: {len(search)}")
    print(f"  Primary series:    {len(primary)}")

    print(f"\n{'─' * 60}")
    print("Subsets")
    print("─" * 60)
    results = run_examples(df)
    for name, subset in results.items():
        description = EXAMPLES[name][0]
        path = write_summary(subset, name)
        print(
            f"  {description}: {len(subset)} series, "
            f"{subset['dataSetName'].nunique()} records"
        )
        print(f"    ✓ {path}")

    print("\n" + "=" * 60)
    print(f"Report saved: {report_path}")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="CoralHydro2k filter examples")
    parser.add_argument("--database", default=DATABASE_FILE)
    args = parser.parse_args()

    os.makedirs(REPORT_DIR, exist_ok=True)
    report_path = os.path.join(REPORT_DIR, "report.txt")
    tee = Tee(report_path)
    try:
        run(args.database, report_path)
    finally:
        tee.close()


if __name__ == "__main__":
    main()
