#!/usr/bin/env python
"""
List couples whose annual reveal is ready to open, plus today's checkpoint days.

Usage:
    python scripts/reveal_readiness.py [--date YYYY-MM-DD]

Environment variables:
    DATABASE_URL          (optional – defaults match app.py)
    DISCLOSURE_TIMEZONE   (optional – defaults to UTC)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dateutil import parser as date_parser

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app import create_app  # noqa: E402
from clock import local_today  # noqa: E402
from models import Couple  # noqa: E402
from checkpoints.service import is_checkpoint_day  # noqa: E402
from reveal.gate import days_until_anniversary, is_anniversary_ready  # noqa: E402


def report(on_date=None) -> int:
    app = create_app()
    with app.app_context():
        today = on_date or local_today()
        couples = Couple.query.order_by(Couple.id.asc()).all()
        print(f"🔍 Checking {len(couples)} couples for {today.isoformat()}...")

        ready = 0
        checkpoint_days = 0
        missing_anniversary = 0
        for couple in couples:
            if couple.anniversary_date is None:
                missing_anniversary += 1
            elif is_anniversary_ready(couple.anniversary_date, couple.last_reveal_year, today):
                ready += 1
                print(f"  • Couple {couple.id}: reveal ready")
            else:
                days = days_until_anniversary(couple.anniversary_date, today)
                print(f"    Couple {couple.id}: {days} days until anniversary")

            checkpoint = is_checkpoint_day(couple.id, today)
            if checkpoint["matched"]:
                checkpoint_days += 1
                labels = ", ".join(config["description"] for config in checkpoint["configs"])
                print(f"  • Couple {couple.id}: checkpoint day ({labels})")

        print("\n✅ Check complete.")
        print(f"    Reveal ready:        {ready}")
        print(f"    Checkpoint days:     {checkpoint_days}")
        print(f"    Missing anniversary: {missing_anniversary}")
        return ready


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--date", help="Evaluate as if today were this date (YYYY-MM-DD).")
    args = parser.parse_args(argv)
    on_date = date_parser.isoparse(args.date).date() if args.date else None
    report(on_date)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit("\n⚠️ Check cancelled by user.")
