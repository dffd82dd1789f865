#!/usr/bin/env python3
"""Evaluate the reference demo scenarios against the loaded reference tables.

Prints each scenario's score next to its expected score, or the full report
in Markdown, JSON or CDS Hooks card form.

Usage:
    python scripts/run_demo_scenarios.py
    python scripts/run_demo_scenarios.py --scenario lbp-red-flags --format markdown
    python scripts/run_demo_scenarios.py --format cards
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from loguru import logger

from appropriateness.cds_hooks import CDSHooksResponse, result_to_cds_cards
from appropriateness.demo_scenarios import DEMO_SCENARIOS
from appropriateness.engine import get_default_engine
from appropriateness.export import export_json, export_markdown
from config.settings import settings


def main():
    parser = argparse.ArgumentParser(
        description="Run the imaging appropriateness demo scenarios"
    )
    parser.add_argument(
        "--scenario",
        choices=sorted(DEMO_SCENARIOS),
        default=None,
        help="Run a single scenario (default: all)",
    )
    parser.add_argument(
        "--format",
        choices=["summary", "markdown", "json", "cards"],
        default="summary",
        help="Output format",
    )
    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)

    engine = get_default_engine()
    scenarios = [DEMO_SCENARIOS[args.scenario]] if args.scenario else list(DEMO_SCENARIOS.values())

    print("=" * 65)
    print("  Imaging Appropriateness Engine — Demo Scenarios")
    print(f"  Reference versions: {engine.reference_versions}")
    print("=" * 65)

    mismatches = 0
    for scenario in scenarios:
        result = engine.evaluate(scenario.request)
        ok = (
            result.score == scenario.expected_score
            and result.category == scenario.expected_category
        )
        mismatches += 0 if ok else 1

        print()
        print(f"[{'PASS' if ok else 'FAIL'}] {scenario.title}")
        print(f"       {scenario.description}")
        if args.format == "summary":
            print(
                f"       score {result.score}/9 (expected {scenario.expected_score}), "
                f"{result.category.value}, coverage {result.coverage_status.value}"
            )
            for factor in result.factors:
                print(f"         {factor.contribution:+.1f}  {factor.name}: {factor.observed_value}")
            for warning in result.warnings:
                print(f"         [{warning.severity.value}] {warning.message}")
        elif args.format == "markdown":
            print(export_markdown(result))
        elif args.format == "json":
            print(export_json(result))
        else:
            print(CDSHooksResponse(cards=result_to_cds_cards(result)).model_dump_json(indent=2))

    print()
    print("=" * 65)
    print(f"  {len(scenarios) - mismatches}/{len(scenarios)} scenarios matched expectations")
    print("=" * 65)
    sys.exit(1 if mismatches else 0)


if __name__ == "__main__":
    main()
