"""GemLedger database management CLI.

Creates and drops the SQL schema for the gemledger domain using the
setup_db/drop_db utilities in gemledger.utils.db. Only meaningful when
PROTEAN_ENV selects an overlay with a SQL database.

Usage:
    PROTEAN_ENV=production python src/manage.py setup-db   # Create all tables
    PROTEAN_ENV=production python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    from gemledger.domain import gemledger
    from gemledger.utils.db import setup_db

    print("Initializing gemledger domain...")
    gemledger.init()
    print("Creating gemledger database schema...")
    setup_db(gemledger)
    print("Done.")


def drop_database():
    from gemledger.domain import gemledger
    from gemledger.utils.db import drop_db

    print("Initializing gemledger domain...")
    gemledger.init()
    print("Dropping gemledger database schema...")
    drop_db(gemledger)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="GemLedger database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
