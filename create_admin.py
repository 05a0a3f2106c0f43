#!/usr/bin/env python3
"""
Script to create an admin in MongoDB, or reset the password of an existing one.

Usage: python create_admin.py --username admin --email admin@example.edu --password secret
Missing options fall back to ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD.
"""
import argparse
import os
import sys

from werkzeug.security import generate_password_hash

from visitlog.repositories.admin_repository import AdminRepository
from visitlog.repositories.mongo_repository import close_client


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create or update a Visit Log admin")
    parser.add_argument("--username", default=os.getenv("ADMIN_USERNAME") or "admin")
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL") or "admin@example.edu")
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    return parser.parse_args(argv)


def create_admin(argv=None) -> int:
    args = parse_args(argv)
    if not args.password:
        print("A password is required (--password or ADMIN_PASSWORD)")
        return 1

    repo = AdminRepository()
    repo.ensure_indexes()
    try:
        created = repo.upsert(args.username, args.email, generate_password_hash(args.password))
    finally:
        close_client()

    if created:
        print(f"Created admin: {args.username} <{args.email}>")
    else:
        print(f"Admin already existed; password updated for {args.username} <{args.email}>")
    return 0


if __name__ == "__main__":
    sys.exit(create_admin())
