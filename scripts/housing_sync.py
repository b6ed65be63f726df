#!/usr/bin/env python3
"""CLI trigger for the Housing.com lead sync.

Usage:
    uv run python scripts/housing_sync.py scheduled
    uv run python scripts/housing_sync.py manual --hours 48
    uv run python scripts/housing_sync.py test
    uv run python scripts/housing_sync.py preview --days 7

Intended for external schedulers (cron, CI, Cloud Scheduler jobs) as well as
operators. Reads DATABASE_URL and HOUSING_* settings from the environment or
.env file, prints the structured result as JSON, and exits 0 on success or 1
on failure.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

# Ensure project root is on sys.path so we can import src.enquiry_crm
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


async def run(args: argparse.Namespace) -> dict:
    """Run the requested mode and return its JSON payload."""
    from src.enquiry_crm.core.database import close_db
    from src.enquiry_crm.housing.exceptions import ConfigurationError
    from src.enquiry_crm.housing.service import (
        build_housing_service,
        run_connection_test,
        run_manual_fetch,
        run_scheduled_sync,
    )

    try:
        if args.command == "scheduled":
            result = await run_scheduled_sync()
        elif args.command == "manual":
            result = await run_manual_fetch(args.hours)
        elif args.command == "test":
            result = await run_connection_test()
        else:
            try:
                service = build_housing_service()
            except ConfigurationError as exc:
                return {"success": False, "message": f"Error fetching Housing leads: {exc}"}
            result = await service.preview_leads(hours_back=args.hours, days_back=args.days)
    finally:
        await close_db()

    return result.to_payload()


def main() -> None:
    from src.enquiry_crm.api.middleware.logging import configure_structlog

    parser = argparse.ArgumentParser(description="Sync Housing.com leads into the CRM")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("scheduled", help="Incremental sync from the stored watermark")

    manual = subparsers.add_parser("manual", help="Sync a fixed lookback window")
    manual.add_argument("--hours", type=int, default=24, help="Lookback window in hours")

    subparsers.add_parser("test", help="Check credentials with a one-hour fetch")

    preview = subparsers.add_parser("preview", help="Show mapped leads without inserting")
    preview.add_argument("--hours", type=int, default=24, help="Lookback window in hours")
    preview.add_argument("--days", type=int, default=None, help="Lookback window in days")

    args = parser.parse_args()

    configure_structlog()
    payload = asyncio.run(run(args))

    print(json.dumps(payload, indent=2, ensure_ascii=False))
    sys.exit(0 if payload.get("success") else 1)


if __name__ == "__main__":
    main()
