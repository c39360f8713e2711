"""Mint a bearer token for a publisher account (local testing)."""
import argparse
from datetime import timedelta
from uuid import UUID

from src.shared.security import create_access_token

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("user_id", type=UUID)
    parser.add_argument("--email", default=None)
    parser.add_argument("--hours", type=int, default=12)
    args = parser.parse_args()

    print(create_access_token(args.user_id, email=args.email, expires_delta=timedelta(hours=args.hours)))
