#!/usr/bin/env python3
"""
Mark Active players Inactive once they have been quiet longer than the
configured inactivity window.

The API runs the same sweep in the background; this script is for cron jobs
or one-off runs against a database the API is not serving.

Usage:
    python run_inactivity_sweep.py             # Flip stale players to Inactive
    python run_inactivity_sweep.py --dry-run   # List who would be flipped
"""
import argparse
import asyncio
import sys

from backoffice.config import get_settings
from backoffice.database import AsyncSessionLocal
from backoffice.services.activity_service import ActivityService


async def run_sweep(dry_run: bool = False) -> int:
    """Run one sweep pass. Returns the number of players (to be) marked Inactive."""
    settings = get_settings()
    async with AsyncSessionLocal() as session:
        try:
            service = ActivityService(session)

            print("=" * 60)
            print(f"INACTIVITY SWEEP (window: {settings.inactivity_window_minutes} minutes)")
            print("=" * 60)

            if dry_run:
                candidates = await service.find_inactive_candidates()
                print("\nDRY RUN MODE - No players will be changed\n")
                for player_id, name, last_seen in candidates:
                    print(f"  {name} ({player_id}) last seen {last_seen.isoformat()}")
                print(f"\nWould mark {len(candidates)} players Inactive")
                return len(candidates)

            marked = await service.run_inactivity_sweep()
            print(f"\nMarked {marked} players Inactive")
            return marked

        except Exception as e:
            print(f"\nError during inactivity sweep: {e}", file=sys.stderr)
            raise


def main():
    parser = argparse.ArgumentParser(description="Mark quiet players Inactive")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show which players would be marked without changing anything",
    )
    args = parser.parse_args()
    asyncio.run(run_sweep(dry_run=args.dry_run))


if __name__ == "__main__":
    main()
