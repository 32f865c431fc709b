#!/usr/bin/env python3
"""
run_analysis.py — Analyze a review dataset from a JSON file.

Usage:
    python run_analysis.py dataset.json                 # Text report
    python run_analysis.py dataset.json --mode strict   # Stricter thresholds
    python run_analysis.py dataset.json --min-reviews 10
    python run_analysis.py dataset.json --json          # JSON only (for CI)
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from reviewtrust.analyzer import STATUS_INSUFFICIENT_DATA, analyze_reviews


def format_report(result: dict) -> str:
    """Render an analyzer result as plain text."""
    name = result.get("place_name") or "this listing"
    if result["status"] == STATUS_INSUFFICIENT_DATA:
        return (
            f"{name}: not enough reviews to analyze "
            f"({result['total_reviews']} < {result['minimum_reviews']})"
        )

    analysis = result["analysis"]
    details = analysis["details"]
    lines = [
        "=" * 60,
        f"  {name}",
        "=" * 60,
        f"  Trust score: {analysis['score']} ({analysis['level']}) — {result['score_text']}",
        f"  Reviews: {details['total_reviews']}   Mode: {details['analysis_mode']}",
        "",
    ]

    if result["patterns"]:
        lines.append("  Suspicious patterns:")
        for p in result["patterns"]:
            lines.append(f"    [{p['severity'].upper():6}] {p['description']}")
        lines.append("")

    if details["main_concerns"]:
        lines.append("  Concerns:")
        lines.extend(f"    - {c['description']}" for c in details["main_concerns"])
    if details["positive_factors"]:
        lines.append("  Positive factors:")
        lines.extend(f"    + {p['description']}" for p in details["positive_factors"])
    lines.append("  Recommendations:")
    lines.extend(f"    * {r['text']}" for r in details["recommendations"])

    if "breakdown" in analysis:
        b = analysis["breakdown"]
        lines.append("")
        lines.append(
            f"  Base {b['base_score']} → adjusted {b['adjusted_score']} → "
            f"final {b['final_score']} (confidence {b['confidence']})"
        )

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="ReviewTrust Dataset Analyzer")
    parser.add_argument("dataset", help="Path to a review dataset JSON file")
    parser.add_argument(
        "--mode",
        choices=["lenient", "standard", "strict"],
        default="standard",
        help="Analysis mode (default: standard)",
    )
    parser.add_argument(
        "--min-reviews",
        type=int,
        default=5,
        help="Minimum reviews required for analysis (default: 5)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON only (for CI/automation)",
    )
    args = parser.parse_args()

    path = Path(args.dataset)
    if not path.exists():
        print(f"Error: Dataset file not found: {path}")
        sys.exit(1)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        print(f"Error: Could not parse {path}: {e}")
        sys.exit(1)

    if not isinstance(raw, dict):
        print(f"Error: {path} must contain a JSON object")
        sys.exit(1)

    result = analyze_reviews(raw, {
        "analysis_mode": args.mode,
        "minimum_reviews_for_analysis": args.min_reviews,
    })

    if args.json:
        print(json.dumps(result, ensure_ascii=False, indent=2))
    else:
        print(format_report(result))


if __name__ == "__main__":
    main()
