#!/usr/bin/env python3
"""
Grant or revoke the manager role for an existing account.

Managers may delete any submission or reply. The role is stored on the user
row and copied into the session at login, so the user has to log in again
for a change to take effect.

Usage examples:
  python scripts/set_manager.py --email ann@example.com
  python scripts/set_manager.py --email ann@example.com --revoke

Requires app environment (DATABASE_URL) via create_app().
"""

from __future__ import annotations

import argparse
import os
import sys

# Allow running from repo root
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from dotenv import load_dotenv

from goodnews import create_app
from goodnews.accounts import set_manager

load_dotenv()


def main():
    ap = argparse.ArgumentParser(description="Grant or revoke the manager role")
    ap.add_argument("--email", required=True, help="Account email address")
    ap.add_argument(
        "--revoke", action="store_true", help="Remove the role instead of granting it"
    )
    args = ap.parse_args()

    app = create_app()
    with app.app_context():
        found = set_manager(args.email, manager=not args.revoke)
    if not found:
        print(f"No account with email {args.email}", file=sys.stderr)
        sys.exit(1)
    state = "revoked" if args.revoke else "granted"
    print(f"Manager role {state} for {args.email}")


if __name__ == "__main__":
    main()
