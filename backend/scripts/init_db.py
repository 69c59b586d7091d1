#!/usr/bin/env python3
"""
Initialize the commute tracking database.

Usage:
    python scripts/init_db.py [--drop]

This script:
1. Connects to DATABASE_URL (SQLite file by default)
2. Optionally drops the existing tables
3. Creates the tables and lists them
"""

import argparse
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect

from config import config
from db import database


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create the commute tracking tables")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args(argv)

    print("=" * 60)
    print("Commute Database Initialization")
    print("=" * 60)
    print(f"\nDatabase URL: {config.get_config_dict()['DATABASE_URL']}")

    if not database.is_database_available():
        print("\nFailed to connect to database!")
        print("  Check DATABASE_URL and that the server is running.")
        return 1

    if args.drop:
        print("\nDropping tables...")
        database.drop_tables()

    print("\nCreating tables...")
    try:
        database.create_tables()
    except Exception as e:
        print(f"Error creating tables: {e}")
        return 1

    print("\nAvailable tables:")
    for table_name in inspect(database.engine).get_table_names():
        print(f"   - {table_name}")

    print("\n" + "=" * 60)
    print("Database initialization complete!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
