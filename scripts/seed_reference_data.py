"""
Seed the exercises and meals tables from a reference YAML file.

Upserts every entry (names match case-insensitively, so re-running updates
rows in place) and reports table counts.

Usage:
    python3 scripts/seed_reference_data.py [--file data/reference_data.yaml] [--db-path data/fitcoach.db]
"""

import argparse
import os
import sys

# Ensure project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fitcoach.config import load_config
from fitcoach.reference_data import DEFAULT_REFERENCE_PATH, load_reference_data, seed_reference_data
from fitcoach.workout_db import WorkoutDB


def parse_args():
    parser = argparse.ArgumentParser(description="Seed exercise and meal reference data.")
    parser.add_argument("--file", default=DEFAULT_REFERENCE_PATH, help="Reference data YAML file.")
    parser.add_argument("--db-path", default=None, help="SQLite path (default: database.path from config.yaml).")
    return parser.parse_args()


def main():
    args = parse_args()
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    db_path = args.db_path or load_config()["database"]["path"]
    if not os.path.isabs(db_path):
        db_path = os.path.join(root, db_path)

    if not os.path.exists(args.file):
        print(f"Reference file not found: {args.file}")
        return

    db = WorkoutDB(db_path)
    db.init_schema()
    exercises, meals = seed_reference_data(db, load_reference_data(args.file))
    counts = db.count_summary()
    db.close()

    print(f"\nSeed complete:")
    print(f"  Exercises upserted:  {exercises}")
    print(f"  Meals upserted:      {meals}")
    print(f"  Exercises in DB:     {counts['exercises']}")
    print(f"  Meals in DB:         {counts['meals']}")


if __name__ == "__main__":
    main()
