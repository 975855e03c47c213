"""
Prints a bearer token for calling a local API.

Example:
    python scripts/issue_token.py --user-id 1 --email me@example.com --role admin
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.auth import create_access_token
from shared.types import Role


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue a local access token")
    parser.add_argument("--user-id", type=int, required=True)
    parser.add_argument("--email", type=str, required=True)
    parser.add_argument(
        "--role",
        type=str,
        default=Role.USER.value,
        help="user, moderator, admin or superadmin",
    )
    parser.add_argument("--organization-id", type=int, default=None)
    parser.add_argument("--name", type=str, default=None, help="Display name")
    parser.add_argument(
        "--ttl-hours",
        type=float,
        default=24.0,
        help="Hours until the token expires",
    )
    args = parser.parse_args()

    if args.ttl_hours <= 0:
        parser.error("--ttl-hours must be positive")

    token = create_access_token(
        args.user_id,
        args.email,
        Role.parse(args.role).value,
        args.organization_id,
        name=args.name,
        expires_in=int(args.ttl_hours * 3600),
    )
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
