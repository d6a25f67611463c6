#!/usr/bin/env python3
"""
Maps usage simulation.
Writes synthetic usage so the warning and blocking paths can be checked
without spending real API quota.
"""

import argparse
import sys
from typing import List, Optional

from dotenv import load_dotenv

from maps_quota import JsonFileQuotaStore, Settings, SimulationHarness, UsageGovernor, WindowTracker, setup_logging


def print_status(governor: UsageGovernor) -> None:
    snapshot = governor.snapshot()
    print("📊 Maps API usage today:")
    for category, entry in governor.usage_stats().items():
        daily = entry["daily"]
        print(f"   {category:<11} {daily['used']:>6} / {daily['limit']:<6} ({daily['percentage']:.0f}%)")
    print(f"   Counting since: {snapshot.date.astimezone(governor.tracker.tz).isoformat()}")
    print(f"   Next reset:     {governor.tracker.next_reset().isoformat()}")

    warning = governor.usage_warning()
    if warning:
        icon = "🚫" if warning.level == "blocked" else "⚠️"
        print(f"{icon} {warning.message}")


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Simulate Maps API usage levels")
    parser.add_argument("action", choices=["high", "max", "reset", "status"], help="high: ~95%% of daily limits, max: 100%%, reset: clear usage")
    parser.add_argument("--log-level", default=None, help="Logging level (env: LOG_LEVEL)")
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings = Settings.from_env()
    tracker = WindowTracker(tz=settings.timezone)
    store = JsonFileQuotaStore(settings.store_path)
    governor = UsageGovernor(store, settings.limits, tracker)
    harness = SimulationHarness(store, settings.limits, on_reload=governor.reload, tracker=tracker)

    if args.action == "high":
        harness.high()
    elif args.action == "max":
        harness.max()
    elif args.action == "reset":
        harness.reset()

    print_status(governor)
    return 0


if __name__ == "__main__":
    sys.exit(main())
