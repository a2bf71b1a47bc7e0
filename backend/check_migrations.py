#!/usr/bin/env python3
"""Quick script to check if group stage tables exist in the database"""

import sys

from sqlalchemy import inspect

from groupstage.database import engine


def check_tables():
    """Check if required group stage tables exist"""
    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()

    required_tables = ["tournament", "team", "groupstage", "groupstagecategory", "group", "groupslot"]

    print("Checking for required group stage tables...")
    print(f"Database: {engine.url}")
    print()

    missing_tables = []
    for table in required_tables:
        if table in existing_tables:
            print(f"✓ {table} exists")
        else:
            print(f"✗ {table} MISSING")
            missing_tables.append(table)

    print()
    if missing_tables:
        print("ERROR: Missing tables detected!")
        print("Run migrations with: alembic upgrade head")
        return False

    unique_names = {uc["name"] for uc in inspector.get_unique_constraints("groupslot")}
    for name in ("uq_groupslot_stage_group_index", "uq_groupslot_stage_team"):
        if name not in unique_names:
            print(f"✗ groupslot constraint {name} MISSING")
            return False

    print("All required tables and slot constraints exist!")
    return True


if __name__ == "__main__":
    try:
        success = check_tables()
        sys.exit(0 if success else 1)
    except Exception as e:
        print(f"Error checking tables: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)
