#!/usr/bin/env python
"""Create the CV Studio tables directly from the SQLAlchemy models.

For local SQLite databases; PostgreSQL deployments use the Alembic migration.

Usage:
  python scripts/create_tables.py
  python scripts/create_tables.py --list
"""
import argparse
import os
import sys

# Ensure project root is on sys.path so `cvstudio` package can be imported
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from sqlalchemy import inspect

from cvstudio.config import settings
from cvstudio.database import Base, engine
import cvstudio.models  # noqa: F401  registers tables on Base.metadata


def main():
    parser = argparse.ArgumentParser(description="Create CV Studio tables")
    parser.add_argument("--list", action="store_true", help="Only list existing tables")
    args = parser.parse_args()

    if not args.list:
        Base.metadata.create_all(engine)
        print(f"Tables created in {settings.DATABASE_URL}")

    tables = inspect(engine).get_table_names()
    print("tables:", tables)


if __name__ == "__main__":
    main()
