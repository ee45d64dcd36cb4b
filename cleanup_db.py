#!/usr/bin/env python3
"""
Database Cleanup Script for Tradebook

Purges every trade from the journal database.

Usage:
    python cleanup_db.py              # Interactive mode with confirmation
    python cleanup_db.py --force      # Skip confirmation (use with caution)
    python cleanup_db.py --dry-run    # Show what would be deleted without deleting
"""

import sys

from tradebook.db.repository import DuckDBTradeRepository
from tradebook.tools.commands import get_repository


def get_trade_counts(repo: DuckDBTradeRepository) -> dict:
    """Count matched and open trades."""
    total = repo.count()
    open_count = len(repo.list_unmatched())
    return {"total": total, "open": open_count, "matched": total - open_count}


def print_trade_counts(counts, title="Current Database State"):
    print(f"\n{'='*70}")
    print(f"{title:^70}")
    print(f"{'='*70}")
    print(f"  {'matched trades':.<30} {counts['matched']:>10,} rows")
    print(f"  {'open trades':.<30} {counts['open']:>10,} rows")
    print(f"  {'total':.<30} {counts['total']:>10,} rows")
    print(f"{'='*70}\n")


def main():
    """Main cleanup function."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Purge all trades from the Tradebook database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Skip confirmation prompt (use with caution)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without actually deleting",
    )

    args = parser.parse_args()

    try:
        repo = get_repository()

        before_counts = get_trade_counts(repo)
        print_trade_counts(before_counts, "BEFORE CLEANUP")

        if before_counts["total"] == 0:
            print("Database is already empty. Nothing to delete.\n")
            return

        if args.dry_run:
            print("DRY RUN MODE - No changes will be made")
            print(f"\nWould delete {before_counts['total']:,} trades.\n")
            return

        if not args.force:
            print(f"This will DELETE {before_counts['total']:,} trades, including matched history.")
            response = input("Continue? (yes/no): ").strip().lower()

            if response not in ["yes", "y"]:
                print("\nCleanup cancelled.\n")
                return

        print("\nPurging trades...")
        deleted = repo.purge()

        print_trade_counts(get_trade_counts(repo), "AFTER CLEANUP")
        print(f"Successfully deleted {deleted:,} trades.\n")

    except Exception as e:
        print(f"\nError during cleanup: {e}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
