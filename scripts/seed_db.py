"""
Seed script for Traffic Buddy divisions.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to Firestore: python scripts/seed_db.py --apply
  - Different seed file: python scripts/seed_db.py --file path/to/divisions.json --apply

Behavior:
  - Loads division records (boundary + officer roster) from the seed file.
  - Writes each one to the `divisions` collection under its id.

NOTE: The in-memory backend (USE_MOCK_DB=true) loads DIVISIONS_SEED_FILE by
itself at startup; this script is only needed for Firestore. Ensure
`FIREBASE_CREDENTIALS_PATH` is set in `.env` before running with --apply.
"""

import argparse
import os

from app.core.settings import settings
from app.services.storage.seed import load_divisions


def write_divisions(db, divisions, apply: bool = False) -> int:
    written = 0
    for division in divisions:
        data = division.model_dump(exclude={"id"})
        print(f"Preparing: divisions/{division.id} ({division.name}, {len(division.officers)} officer(s))")
        if not apply:
            continue
        try:
            db.collection("divisions").document(division.id).set(data)
            written += 1
            print(f"Wrote: divisions/{division.id}")
        except Exception as e:
            print(f"Failed to write divisions/{division.id}: {e}")
    return written


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write divisions to Firestore instead of dry-run")
    parser.add_argument("--file", default=settings.DIVISIONS_SEED_FILE, help="Division seed JSON file")
    args = parser.parse_args()

    seed_path = os.path.join(os.getcwd(), args.file)
    if not os.path.exists(seed_path):
        print(f"Seed file not found: {seed_path}")
        return

    divisions = load_divisions(seed_path)

    db = None
    if args.apply:
        from app.config.firebase import get_db

        db = get_db()

    written = write_divisions(db, divisions, apply=args.apply)
    if args.apply:
        print(f"Done: {written}/{len(divisions)} division(s) written")
    else:
        print("Dry run complete. Re-run with --apply to write to Firestore.")


if __name__ == "__main__":
    main()
