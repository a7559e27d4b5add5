#!/usr/bin/env python3
"""
Retry Pending Checkouts Script

Re-opens Stripe checkout sessions for PENDING purchases that were stored but
never got a session (Stripe was down or timed out during intake). Sessions
are requested with the original idempotency key, so a session Stripe did
create before is returned instead of a new one.

Usage:
    python retry_pending_checkouts.py
    python retry_pending_checkouts.py --limit 20 --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.errors import CheckoutConflictError, RaffleError
from repositories.purchase_repository import list_pending_without_session
from services.purchase_intake_service import resume_checkout

logger = logging.getLogger("retry_pending_checkouts")


def retry_pending_checkouts(limit: int, dry_run: bool = False) -> dict[str, int]:
    """
    Resume checkout for up to `limit` PENDING purchases without a session.

    Returns:
        Counts of resumed, skipped, conflicting and failed purchases. A
        conflict means Stripe still holds the idempotency key with other
        parameters; it clears once the key expires (24h).
    """

    counts = {"resumed": 0, "skipped": 0, "conflicts": 0, "failed": 0}

    for purchase in list_pending_without_session(limit=limit):
        if dry_run:
            print(f"[DRY RUN] Would resume checkout for {purchase.purchase_id} ({purchase.quantity} números)")
            counts["skipped"] += 1
            continue

        try:
            session = resume_checkout(purchase.purchase_id)
        except CheckoutConflictError as e:
            logger.warning("Checkout retry conflict: purchase_id=%s error=%s", purchase.purchase_id, e.detail)
            counts["conflicts"] += 1
            continue
        except RaffleError as e:
            logger.error("Checkout retry failed: purchase_id=%s error=%s", purchase.purchase_id, e)
            counts["failed"] += 1
            continue

        if session is None:
            counts["skipped"] += 1
        else:
            counts["resumed"] += 1

    return counts


def main() -> int:
    parser = argparse.ArgumentParser(description="Retry checkout sessions for pending purchases")
    parser.add_argument("--limit", type=int, default=100, help="Maximum purchases to process")
    parser.add_argument("--dry-run", action="store_true", help="List purchases without calling Stripe")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    counts = retry_pending_checkouts(args.limit, dry_run=args.dry_run)

    print("=" * 50)
    print("PENDING CHECKOUT RETRY")
    print("=" * 50)
    print(f"Resumed:   {counts['resumed']}")
    print(f"Skipped:   {counts['skipped']}")
    print(f"Conflicts: {counts['conflicts']}")
    print(f"Failed:    {counts['failed']}")
    print("=" * 50)

    return 1 if counts["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
