#!/usr/bin/env python3

import sys

from config import Config, configure_logging
from database import CourtDatabase
from exceptions import StoreError


def setup_database(path=None):
    database = CourtDatabase(path or Config.DATABASE_PATH)

    try:
        stats = database.get_stats()
        courts = database.get_courts()
        delhi = next((court for court in courts if court.name == 'Delhi High Court'), None)
        case_types = database.get_case_types(delhi.id) if delhi else []
    finally:
        database.close()

    print(f"✅ Database ready at {database.path}")
    print("📊 Database Statistics:")
    print(f"   - Total Queries: {stats['totalQueries']}")
    print(f"   - Successful Queries: {stats['successfulQueries']}")
    print(f"   - Cached Cases: {stats['cachedCases']}")
    print(f"   - Success Rate: {stats['successRate']}%")

    print(f"🏛️  Available Courts: {len(courts)}")
    for court in courts:
        print(f"   - {court.name} ({court.type})")

    print(f"⚖️  Case Types for Delhi High Court: {len(case_types)}")
    for case_type in case_types:
        print(f"   - {case_type.type_name} ({case_type.type_code})")

    return stats


if __name__ == "__main__":
    configure_logging(Config.LOG_LEVEL)
    try:
        setup_database(sys.argv[1] if len(sys.argv) > 1 else None)
    except StoreError as e:
        print(f"❌ Database setup failed: {e}")
        sys.exit(1)
