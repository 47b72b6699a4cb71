#!/usr/bin/env python3
"""
Local Run Script

Resolve competitors for a site and run a full comparison locally.

Usage:
    python scripts/run_local.py acme-hvac.com
    python scripts/run_local.py acme-hvac.com --scope national --pick 2
    python scripts/run_local.py acme-hvac.com --competitor rival-hvac.com --output result.json
"""

import asyncio
import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from aeo_engine.context.models import Scope
from aeo_engine.engine import create_engine
from aeo_engine.persistence.runs import RunStatus
from aeo_engine.utils.config import get_settings
from aeo_engine.utils.log import configure_logging


async def run_local(
    url: str,
    scope: str,
    competitor: str = None,
    pick: int = 1,
    output_file: str = None,
):
    """Submit a run, pick a competitor and wait for the result."""
    engine = create_engine()
    launcher = engine.launcher

    print(f"\n{'='*60}")
    print("AEO COMPETITOR ENGINE - LOCAL RUN")
    print(f"{'='*60}")
    print(f"Subject: {url}")
    print(f"Scope: {scope}")
    print(f"{'='*60}\n")

    start_time = datetime.now()

    try:
        run = await launcher.submit(url, Scope(scope), competitor_url=competitor)

        if run.status == RunStatus.FAILED:
            print(f"Run failed: {run.status_message}")
            return

        if run.status == RunStatus.SELECTING_COMPETITOR:
            print("Competitors found:")
            for i, candidate in enumerate(run.candidates, 1):
                flag = "" if candidate.verified else " (unverified)"
                print(
                    f"  {i}. {candidate.domain} - {candidate.name} "
                    f"[{candidate.source.value}, {candidate.similarity:.2f}]{flag}"
                )

            index = min(max(pick, 1), len(run.candidates)) - 1
            chosen = run.candidates[index].domain
            print(f"\nAnalyzing against: {chosen}\n")
            task = launcher.select(run.run_id, run.token, chosen)
        else:
            task = launcher.task_for(run.run_id)

        if task is not None:
            run = await task
    finally:
        await engine.close()

    duration = (datetime.now() - start_time).total_seconds()

    print(f"\n{'='*60}")
    print(f"RUN {run.status.value.upper()}")
    print(f"{'='*60}")
    print(f"Duration: {duration:.1f} seconds")
    print(f"Message: {run.status_message}")
    print(f"Cost: {run.total_cost_cents} cents")

    if run.result:
        result = run.result
        print(f"\nScore: {result['subject_score']} vs {result['competitor_score']} ({result['status'] or 'not comparable'})")
        for category in result["categories"]:
            theirs = category["competitor_score"]
            print(
                f"  {category['name']:<20} {category['score']:>3} vs "
                f"{'-' if theirs is None else theirs:>3}  {category['status'] or 'n/a'}"
            )
        if result["insights"]:
            print("\nInsights:")
            for insight in result["insights"]:
                print(f"  - {insight}")
        if result["unavailable"]:
            print(f"\nUnavailable: {', '.join(result['unavailable'])}")

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(run.to_dict(), f, indent=2, default=str)
        print(f"\nRun saved to: {output_file}")


def main():
    parser = argparse.ArgumentParser(description="Run a local competitor analysis")
    parser.add_argument("url", help="Subject domain or URL")
    parser.add_argument("--scope", choices=[s.value for s in Scope], default=Scope.LOCAL.value)
    parser.add_argument("--competitor", help="Skip discovery and compare against this domain")
    parser.add_argument("--pick", type=int, default=1, help="Which offered competitor to analyze (1-based)")
    parser.add_argument("--output", "-o", help="Write the final run as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    load_dotenv()
    get_settings.cache_clear()
    configure_logging("DEBUG" if args.verbose else None)

    asyncio.run(run_local(
        url=args.url,
        scope=args.scope,
        competitor=args.competitor,
        pick=args.pick,
        output_file=args.output,
    ))


if __name__ == "__main__":
    main()
