# scripts/setup/bootstrap_admin.py
"""
Create the first administrator account.
Refuses to run once any user exists; add further users through the API.
Usage: python scripts/setup/bootstrap_admin.py --email a@b.com --username admin --name "Admin"
"""

import sys
import os
import argparse
import getpass
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from intake.database import SessionLocal, create_tables
from intake.exceptions import IntakeError
from intake.schemas.user import BootstrapRequest
from intake.services.user_service import bootstrap_admin


def main():
    parser = argparse.ArgumentParser(description="Create the first admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--username", required=True)
    parser.add_argument("--name", required=True, help="Full name")
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    create_tables()
    db = SessionLocal()
    try:
        profile = bootstrap_admin(db, BootstrapRequest(
            email=args.email, password=password, full_name=args.name, username=args.username,
        ))
    except IntakeError as e:
        print(f"❌ {e.message}")
        sys.exit(1)
    finally:
        db.close()

    print(f"✅ Admin created: {profile.username} <{profile.email}>")


if __name__ == "__main__":
    main()
