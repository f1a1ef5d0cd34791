"""Storefront management CLI.

Creates and drops the database schema, and runs the reservation expiry sweep
(intended for a periodic scheduler such as cron).

Usage:
    python src/manage.py setup-db       # Create all tables
    python src/manage.py drop-db        # Drop all tables
    python src/manage.py sweep-holds    # Release stock holds past their expiry
"""

import argparse
import sys


def setup_database():
    from storefront.domain import storefront
    from storefront.utils.db import setup_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Creating storefront database schema...")
    setup_db(storefront)
    print("Done.")


def drop_database():
    from storefront.domain import storefront
    from storefront.utils.db import drop_db

    print("Initializing storefront domain...")
    storefront.init()
    print("Dropping storefront database schema...")
    drop_db(storefront)
    print("Done.")


def _release_expired_holds():
    from protean import current_domain
    from storefront.inventory.ledger import ReleaseExpiredHolds

    return current_domain.process(ReleaseExpiredHolds(), asynchronous=False)


def sweep_holds():
    """Release expired holds, reusing an already active storefront domain context."""
    from protean.domain.context import has_domain_context
    from storefront.domain import storefront

    if has_domain_context():
        released = _release_expired_holds()
    else:
        storefront.init()
        with storefront.domain_context():
            released = _release_expired_holds()
    print(f"Released {released or 0} expired hold(s).")


def main():
    parser = argparse.ArgumentParser(description="Storefront management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("sweep-holds", help="Release stock reservations past their expiry")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sweep-holds":
        sweep_holds()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
