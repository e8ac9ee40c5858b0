"""Storefront ordering database management CLI.

Creates and drops the database schema of the ordering domain through the
providers configured in domain.toml (SQL providers only).

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

import structlog

logger = structlog.get_logger(__name__)


def setup_databases():
    """Create the ordering schema."""
    from ordering.domain import ordering
    from ordering.utils.db import setup_db

    ordering.init()
    logger.info("creating_schema", domain=ordering.name)
    setup_db(ordering)
    logger.info("schema_ready", domain=ordering.name)


def drop_databases():
    """Drop the ordering schema."""
    from ordering.domain import ordering
    from ordering.utils.db import drop_db

    ordering.init()
    logger.info("dropping_schema", domain=ordering.name)
    drop_db(ordering)
    logger.info("schema_dropped", domain=ordering.name)


def main():
    from ordering.utils.logging import configure_logging

    configure_logging()

    parser = argparse.ArgumentParser(description="Storefront ordering database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
