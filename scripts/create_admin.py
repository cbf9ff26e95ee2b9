#!/usr/bin/env python3
"""
Admin Seeding Script

Self-registration of admins and placement officers is disabled by default,
so the first accounts are created here.

Usage:
    python scripts/create_admin.py --email admin@college.edu --first-name Site --last-name Admin
    python scripts/create_admin.py --email po@college.edu --first-name Placement --last-name Cell \
        --role placement_officer
"""
import argparse
import getpass
import sys
sys.path.insert(0, '.')

from fastapi import HTTPException
from pydantic import ValidationError

from campus_portal.core.config import get_settings
from campus_portal.db.mongodb import create_mongo_client, init_mongo_indexes
from campus_portal.schemas.schemas import StaffRegistration
from campus_portal.services.user_service import UserService


def main():
    parser = argparse.ArgumentParser(description="Create an admin or placement officer account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    parser.add_argument("--role", choices=["admin", "placement_officer"], default="admin")
    args = parser.parse_args()

    password = getpass.getpass("Password (min 8 chars): ")

    try:
        payload = StaffRegistration(
            role=args.role,
            email=args.email,
            first_name=args.first_name,
            last_name=args.last_name,
            password=password,
        )
    except ValidationError as e:
        print(f"❌ Invalid input:\n{e}")
        sys.exit(1)

    settings = get_settings()
    client = create_mongo_client(settings)
    db = client[settings.mongodb_db]
    init_mongo_indexes(db)

    try:
        user = UserService(db, settings.bcrypt_rounds).register(payload, allow_privileged=True)
    except HTTPException as e:
        print(f"❌ {e.detail}")
        sys.exit(1)
    finally:
        client.close()

    print(f"✅ Created {user['role']} {user['email']} (id {user['id']})")


if __name__ == "__main__":
    main()
