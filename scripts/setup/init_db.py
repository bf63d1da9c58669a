# scripts/setup/init_db.py
"""
Initialize database: creates all tables, optionally registers a site.
Run once before first launch, or after adding new models.
Usage:
    python scripts/setup/init_db.py
    python scripts/setup/init_db.py --site "Warehouse Nord" --contact "A. Kouassi" --phone 0707070707
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

import argparse

from app.database import build_engine, build_session_factory, create_tables
from app.config import settings
from app.models.site import Site
from sqlalchemy import inspect, text


def main():
    parser = argparse.ArgumentParser(description="Create tables and optionally register a site")
    parser.add_argument("--site", help="Site name to register")
    parser.add_argument("--contact", help="On-site contact name")
    parser.add_argument("--phone", help="On-site contact phone")
    parser.add_argument("--portal-url", default=f"http://{settings.BACKEND_IP}:{settings.BACKEND_PORT}",
                        help="Base URL the emergency link should point to")
    args = parser.parse_args()

    print("🗄️  Sentinel DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    engine = build_engine(settings.DATABASE_URL)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  docker-compose up -d db")
        print("  # or: sudo systemctl start postgresql")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables(engine)
    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.site:
        db = build_session_factory(engine)()
        try:
            site = Site(site_name=args.site, contact_name=args.contact, contact_phone=args.phone)
            db.add(site)
            db.commit()
            print(f"\n🏢 Site registered: {site.site_name} ({site.id})")
            print(f"🔗 Emergency link:  {args.portal_url}/emergency/{site.emergency_link_id}")
        finally:
            db.close()

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn app.main:app --host {settings.BACKEND_IP} --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
