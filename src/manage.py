"""Commerce database management CLI.

Provides commands to create and drop the database schema of the commerce
domain, for configurations that use a relational provider.

Usage:
    PROTEAN_ENV=production python src/manage.py setup-db   # Create all tables
    PROTEAN_ENV=production python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    from commerce.domain import commerce
    from commerce.utils.db import setup_db

    print("Initializing commerce domain...")
    commerce.init()
    print("Creating commerce database schema...")
    setup_db(commerce)
    print("Done.")


def drop_database():
    from commerce.domain import commerce
    from commerce.utils.db import drop_db

    print("Initializing commerce domain...")
    commerce.init()
    print("Dropping commerce database schema...")
    drop_db(commerce)
    print("Done.")


def main():
    from commerce.utils.logging import configure_logging

    parser = argparse.ArgumentParser(description="Commerce database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()
    configure_logging()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
