#!/usr/bin/env python3
"""
Setup Check Script

Creates missing tables, then verifies the database and matcher connections.
Usage: python scripts/check_setup.py
"""
import sys
sys.path.insert(0, '.')

from campus_placement.core.config import get_settings
from campus_placement.core.logging_config import setup_logging
from campus_placement.db.database import configure_engine, init_schema, test_database_connection
from campus_placement.services.matcher_client import get_matcher_client


def main() -> int:
    setup_logging()
    settings = get_settings()
    print("=" * 50)
    print("CAMPUS PLACEMENT ENGINE - SETUP CHECK")
    print("=" * 50)

    # Database
    print("\n[1] Testing database...")
    engine = configure_engine()
    print(f"    URL: {engine.url.render_as_string(hide_password=True)}")
    if not test_database_connection():
        print("    ❌ Database: FAILED")
        return 1
    init_schema()
    print("    ✅ Database: CONNECTED, schema ready")

    # Matcher (only if API key is set)
    print("\n[2] Testing matcher API...")
    if settings.matcher_api_key:
        print(f"    Base URL: {settings.matcher_base_url}")
        if get_matcher_client().test_connection():
            print("    ✅ Matcher: CONNECTED")
        else:
            print("    ❌ Matcher: FAILED (analyses will use the default result)")
    else:
        print("    ⚠️  Matcher: API key not configured (analyses will use the default result)")

    print("\n" + "=" * 50)
    print("Setup check complete!")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
