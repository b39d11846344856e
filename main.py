"""
Indicator Statistics — End-to-end pipeline smoke test.

Builds a synthetic set of indicators and followups, runs every statistics
entry point against it, and prints the results plus acceptance checks.

Usage:
    python main.py
"""

import logging
import sys
from pathlib import Path

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from indicator_stats.config import GEO_HIERARCHY_FILE
from indicator_stats.exceptions import ReferentialIntegrityError
from indicator_stats.loaders import load_geo_entities
from indicator_stats.simulator import build_demo_dataset
from indicator_stats.statistics import StatisticsEngine

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Run the full pipeline and print smoke-test outputs."""

    print("=" * 70)
    print("  INDICATOR STATISTICS — Aggregation Engine")
    print("  Pipeline Smoke Test")
    print("=" * 70)
    print()

    # ------------------------------------------------------------------
    # 1. Reference data and synthetic indicators
    # ------------------------------------------------------------------
    print("[ 1 ] BUILDING DATASET")
    print("-" * 40)

    if GEO_HIERARCHY_FILE.exists():
        entities = load_geo_entities(str(GEO_HIERARCHY_FILE))
        print(f"\nDivision workbook: {len(entities)} entities")
        print(entities.groupby("level").size().to_string())
    else:
        logger.warning("No division workbook at %s, using synthetic divisions", GEO_HIERARCHY_FILE)

    indicators, followups, hierarchy = build_demo_dataset()
    engine = StatisticsEngine(indicators.indicators, indicators.followups, hierarchy)

    overview = indicators.get_indicator_overview()
    print(f"\nIndicators: {overview['total']} | with data: {overview['with_data']}")
    print(f"Followups: {len(indicators.followups)}")

    registry = pd.DataFrame([i.summary() for i in indicators.list_indicators()])
    print(registry[["code", "name", "polarity_direction"]].to_string(index=False))

    literacy = indicators.list_indicators(search="EDU-01")[0]

    # ------------------------------------------------------------------
    # 2. Statistics entry points
    # ------------------------------------------------------------------
    print("\n")
    print("[ 2 ] STATISTICS OUTPUTS")
    print("-" * 40)

    years = engine.get_available_years(literacy.id)
    print(f"\nAvailable years: {years['years']} ({years['total_years']})")

    national = engine.get_filtered_statistics(literacy.id, "Global")
    print(f"\nNational statistics — {literacy.code}:")
    for key, value in national["statistics"].items():
        if key != "target_progress":
            print(f"  {key:30s} | {value}")
    print(pd.DataFrame(national["statistics"]["target_progress"]).to_string(index=False))

    chart = engine.get_filtered_chart_data(literacy.id, "Province")
    print(f"\nProvincial chart: {len(chart['datasets'])} datasets over {chart['labels']}")
    for dataset in chart["datasets"]:
        print(f"  {dataset['label']:30s} | {dataset['data']}")

    summary = pd.DataFrame(engine.get_global_summary(literacy.id, "Province"))
    print("\nProvincial yearly mean:")
    print(summary.to_string(index=False))

    comparison = engine.get_comparison_statistics(
        literacy.id,
        [
            {"geo_level": "Global"},
            {"geo_level": "Province", "geo_entity_id": "P01"},
            {"geo_level": "Province", "geo_entity_id": "P03", "start_year": 2019},
        ],
    )
    print("\nComparison:")
    for key, result in comparison.items():
        stats = result["statistics"]
        print(
            f"  {key:16s} | {result['label']:20s} | latest {stats['latest_value']} "
            f"| trend {stats['trend_direction']} ({stats['trend_assessment']})"
        )

    # ------------------------------------------------------------------
    # 3. Acceptance checks
    # ------------------------------------------------------------------
    print("\n")
    print("[ 3 ] ACCEPTANCE CRITERIA CHECKS")
    print("-" * 40)

    # Check 1: Global chart has the two national slices
    global_chart = engine.get_filtered_chart_data(literacy.id, "Global")
    check1 = len(global_chart["datasets"]) == 2
    print(f"\n  [{'PASS' if check1 else 'FAIL'}] Global chart has {len(global_chart['datasets'])} datasets (need 2)")

    # Check 2: filtering is idempotent
    again = engine.get_filtered_statistics(literacy.id, "Global")
    check2 = again == national
    print(f"  [{'PASS' if check2 else 'FAIL'}] Repeated statistics call returns identical result")

    # Check 3: removing slice 0 deletes its followups and shifts slice 1 down
    before = engine.get_filtered_statistics(literacy.id, "Province", "P01")["data_indices"]
    removed = indicators.remove_data_slice(literacy.id, 0)
    after = engine.get_filtered_statistics(literacy.id, "Province", "P01")["data_indices"]
    check3 = removed > 0 and after == [before[0] - 1]
    print(f"  [{'PASS' if check3 else 'FAIL'}] Slice removal deleted {removed} followups, P01 moved {before} -> {after}")

    # Check 4: out-of-bounds followup is rejected
    try:
        followups.create_followup(literacy.id, len(literacy.data), 2020, 1.0)
        check4 = False
    except ReferentialIntegrityError:
        check4 = True
    print(f"  [{'PASS' if check4 else 'FAIL'}] Followup beyond the last slice is rejected")

    print("\n" + "=" * 70)
    print("  Pipeline complete.")
    print("=" * 70)


if __name__ == "__main__":
    main()
