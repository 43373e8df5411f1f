#!/usr/bin/env python
"""Create a staff account from the command line.

Usage:
    python create_user.py <username> <password> "<full name>" [--admin]
"""
import sys

from cannaclub.core.exceptions import ClubError
from cannaclub.db.init_db import init_db
from cannaclub.db.session import SessionLocal, atomic
from cannaclub.services import user_service


def main(argv):
    args = [a for a in argv if a != "--admin"]
    if len(args) != 3:
        print(__doc__)
        return 2
    username, password, full_name = args

    init_db()
    db = SessionLocal()
    try:
        users = user_service.list_users(db)
        print(f"\n{'='*60}")
        print(f"Current users in database: {len(users)}")
        print(f"{'='*60}")
        for u in users:
            print(f"  ✓ ID: {u.id} | {u.username} | admin={u.is_admin}")

        try:
            with atomic(db):
                user = user_service.create_user(db, username, password, full_name, is_admin="--admin" in argv)
        except ClubError as e:
            print(f"\n✗ {e.message}\n")
            return 1

        print(f"\n✅ User '{user.username}' created (id {user.id}, admin={user.is_admin})\n")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
