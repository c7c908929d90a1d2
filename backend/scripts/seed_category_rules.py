#!/usr/bin/env python3
"""
Seed the expiration category rules and the app config row.

Safe to re-run: rows are upserted by id.

Usage:
    python scripts/seed_category_rules.py
    python scripts/seed_category_rules.py --disclaimer "冷蔵4℃保存を前提にした目安です"
"""

import argparse
import sys
import os
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()
load_dotenv(Path(__file__).parent.parent.parent / ".env")

from supabase import create_client

from kondate.services.supabase import TABLES

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
    print("Error: Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
    sys.exit(1)

client = create_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

# Days assume refrigeration at 4C. "custom" has no default: the user supplies days.
CATEGORY_RULES = [
    {"id": "leafy_greens", "label": "葉物野菜", "default_expire_days": 4, "basis": "USDA_FDA_4C", "order": 100},
    {"id": "root_vegetables", "label": "根菜", "default_expire_days": 14, "basis": "USDA_FDA_4C", "order": 110},
    {"id": "tofu", "label": "豆腐", "default_expire_days": 5, "basis": "USDA_FDA_4C", "order": 150},
    {"id": "raw_meat", "label": "生肉", "default_expire_days": 2, "basis": "USDA_FDA_4C", "order": 200},
    {"id": "raw_fish", "label": "生魚", "default_expire_days": 2, "basis": "USDA_FDA_4C", "order": 210},
    {"id": "processed_meat", "label": "加工肉", "default_expire_days": 7, "basis": "USDA_FDA_4C", "order": 220},
    {"id": "eggs", "label": "卵", "default_expire_days": 21, "basis": "USDA_FDA_4C", "order": 300},
    {"id": "dairy", "label": "乳製品", "default_expire_days": 7, "basis": "USDA_FDA_4C", "order": 310},
    {"id": "leftovers", "label": "作り置き", "default_expire_days": 3, "basis": "USDA_FDA_4C", "order": 400},
    {"id": "custom", "label": "カスタム", "default_expire_days": 0, "basis": "USER", "order": 9999},
]


def main():
    parser = argparse.ArgumentParser(description="Seed category expire rules")
    parser.add_argument("--disclaimer", default=None, help="Cold storage disclaimer shown in the app")
    args = parser.parse_args()

    print(f"Seeding {len(CATEGORY_RULES)} category rules...")
    client.table(TABLES["category_rules"]).upsert(CATEGORY_RULES, on_conflict="id").execute()
    for rule in CATEGORY_RULES:
        days = rule["default_expire_days"] or "-"
        print(f"  ✓ {rule['id']:<16} {rule['label']} ({days})")

    if args.disclaimer is not None:
        client.table(TABLES["app_configs"]).upsert(
            {"id": "main", "cold_storage_disclaimer": args.disclaimer},
            on_conflict="id",
        ).execute()
        print("  ✓ app config updated")

    print("\nDone!")


if __name__ == "__main__":
    main()
