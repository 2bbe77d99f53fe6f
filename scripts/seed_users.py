"""
Seed demo accounts (one resident, one official, one admin).

Usage:
    python scripts/seed_users.py [--dry-run] [--password PASSWORD]
"""
import sys
import os
import argparse

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from barangay_hub.auth.security import get_password_hash
from barangay_hub.db import Base, SessionLocal, init_engine
from barangay_hub.models.models import User

DEMO_USERS = [
    {"username": "juan", "full_name": "Juan Dela Cruz", "role": "resident"},
    {"username": "pedro", "full_name": "Pedro Santos", "role": "official"},
    {"username": "admin", "full_name": "Barangay Administrator", "role": "admin"},
]


def seed_users(password: str, dry_run: bool = False) -> int:
    engine = init_engine()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    created = 0
    try:
        for spec in DEMO_USERS:
            existing = db.query(User).filter(User.username == spec["username"]).first()
            if existing:
                print(f"[SKIP] {spec['username']} already exists ({existing.role})")
                continue
            print(f"[ADD] {spec['username']} as {spec['role']}")
            if not dry_run:
                db.add(User(password_hash=get_password_hash(password), **spec))
            created += 1
        if dry_run:
            db.rollback()
        else:
            db.commit()
    finally:
        db.close()
    return created


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo resident/official/admin accounts")
    parser.add_argument("--dry-run", action="store_true", help="Only print what would be created")
    parser.add_argument("--password", default="password123", help="Password for every demo account")
    args = parser.parse_args()
    count = seed_users(args.password, dry_run=args.dry_run)
    print(f"Done. {count} user(s) {'would be ' if args.dry_run else ''}created.")
