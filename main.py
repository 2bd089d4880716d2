#!/usr/bin/env python3
"""
main.py - CoralHydro2k Figure 1 + filter examples with logging
"""

import os
import sys
import argparse
from datetime import datetime
from pathlib import Path
import subprocess
import shutil

# Paths
SCRIPT_DIR = Path(__file__).parent.absolute()
FIGURE_SCRIPT = SCRIPT_DIR / "FIGURE1" / "plot_figure1_from_db.py"
FILTER_SCRIPT = SCRIPT_DIR / "FILTER" / "filter_examples.py"
DEFAULT_DATABASE = SCRIPT_DIR / "data" / "CoralHydro2k1_0_0.pkl"

FIGURE_PLOTS_DIR = SCRIPT_DIR / "FIGURE1" / "plots"
FIGURE_REPORT_DIR = SCRIPT_DIR / "FIGURE1" / "report"
FILTER_REPORT_DIR = SCRIPT_DIR / "FILTER" / "report"

# Global log file
LOG_FILE = SCRIPT_DIR / "pipeline_report.txt"


class TeeOutput:
    """Writes to both stdout and a file"""

    def __init__(self, filepath):
        self.terminal = sys.stdout
        self.log = open(filepath, "w", encoding="utf-8")

    def write(self, message):
        self.terminal.write(message)
        self.log.write(message)

    def flush(self):
        self.terminal.flush()
        self.log.flush()

    def close(self):
        self.log.close()


def print_header(text: str, char: str = "=", width: int = 80):
    print()
    print(char * width)
    print(text.center(width))
    print(char * width)
    print()


def print_section(text: str):
    print()
    print("─" * 80)
    print(f"  {text}")
    print("─" * 80)


def check_file_exists(filepath: Path, description: str) -> bool:
    if not filepath.exists():
        print(f"  ⚠  {description} not found: {filepath}")
        return False
    print(f"  ✓ {description} found: {filepath.name}")
    return True


def clean_directory(dirpath: Path, description: str) -> int:
    if not dirpath.exists():
        return 0
    count = 0
    for item in dirpath.iterdir():
        if item.is_file():
            item.unlink()
            count += 1
        elif item.is_dir():
            shutil.rmtree(item)
            count += 1
    if count > 0:
        print(f"  ✓ Cleaned {description}: {count} items removed")
    return count


def clean_all_outputs() -> None:
    print_section("Cleaning Output Directories")
    total = 0
    total += clean_directory(FIGURE_PLOTS_DIR, "Figure 1 plots")
    total += clean_directory(FIGURE_REPORT_DIR, "Figure 1 reports")
    total += clean_directory(FILTER_REPORT_DIR, "filter reports")
    print(f"\n  Total items removed: {total}")


def run_script(script_path: Path, description: str, database: Path) -> bool:
    """Execute Python script with PYTHONPATH set correctly."""
    if not script_path.exists():
        print(f"  ✗ {description} not found: {script_path}")
        return False

    print(f"\n  ▶ Starting {description} ...")
    print(f"    Path: {script_path}")

    # coralhydro2k package importable without installation
    env = os.environ.copy()
    pythonpath = str(SCRIPT_DIR)

    if "PYTHONPATH" in env:
        env["PYTHONPATH"] = pythonpath + os.pathsep + env["PYTHONPATH"]
    else:
        env["PYTHONPATH"] = pythonpath

    print(f"    PYTHONPATH: {pythonpath}")

    try:
        result = subprocess.run(
            [sys.executable, str(script_path), "--database", str(database)],
            cwd=str(script_path.parent),
            env=env,
            capture_output=False,
        )
    except OSError as e:
        print(f"  ✗ Error: {e}")
        return False

    if result.returncode == 0:
        print(f"  ✓ {description} completed successfully")
        return True
    print(f"  ✗ {description} failed with exit code {result.returncode}")
    return False


def print_summary(steps: dict, start: datetime):
    print_header("Summary", char="═")
    duration = datetime.now() - start
    for name, ok in steps.items():
        print(f"  {name + ':':<10}{'✓ Success' if ok else '✗ Failed'}")
    print(f"\n  Total duration: {duration.total_seconds():.1f} seconds")
    print(f"  Log saved to: {LOG_FILE}")


def main():
    parser = argparse.ArgumentParser(
        description="CoralHydro2k Figure 1 and Filter Examples Pipeline"
    )
    parser.add_argument("--figure-only", action="store_true")
    parser.add_argument("--filter-only", action="store_true")
    parser.add_argument("--clean", action="store_true")
    parser.add_argument("--database", type=Path, default=DEFAULT_DATABASE)
    args = parser.parse_args()

    # Set up logging
    tee = TeeOutput(LOG_FILE)
    sys.stdout = tee

    start = datetime.now()

    print_header("CoralHydro2k Pipeline", char="═")
    print(f"  Timestamp: {start.strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"  Directory: {SCRIPT_DIR}")
    print()

    if args.clean:
        clean_all_outputs()

    print_section("1. Preparation")
    print("\n  Input:")
    database = args.database.absolute()
    db_exists = check_file_exists(database, "Database")

    print("\n  Scripts:")
    figure_exists = check_file_exists(FIGURE_SCRIPT, "Figure 1 script")
    filter_exists = check_file_exists(FILTER_SCRIPT, "Filter script")

    steps = {}

    if not args.filter_only:
        print_section("2. Figure 1 (site map, temporal coverage)")
        steps["Figure 1"] = (
            db_exists
            and figure_exists
            and run_script(FIGURE_SCRIPT, "Figure 1", database)
        )

    if not args.figure_only:
        print_section("3. Filter examples")
        steps["Filters"] = (
            db_exists
            and filter_exists
            and run_script(FILTER_SCRIPT, "Filter examples", database)
        )

    print_summary(steps, start)

    # Close log file
    tee.close()
    sys.stdout = tee.terminal

    if not all(steps.values()):
        print("⚠  Some steps failed — see errors above.")
        sys.exit(1)
    else:
        print("✓ Pipeline completed successfully!")
        sys.exit(0)


if __name__ == "__main__":
    main()
