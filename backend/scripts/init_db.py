#!/usr/bin/env python3
""" Create the Wellspring tables, optionally printing a bearer token for local testing. """
import argparse
import logging
import sys
from pathlib import Path

# Add the repository root to the Python path so 'import backend' works
sys.path.append(str(Path(__file__).resolve().parents[2]))

from backend.wellspring.config import get_settings  # noqa: E402
from backend.wellspring.core.security import create_access_token  # noqa: E402
from backend.wellspring.db.base import init_db  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--token-for", type=int, metavar="USER_ID", help="print an access token for USER_ID")
    parser.add_argument("--tier", default="free", help="user_type claim for the printed token")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    print(f"Initializing database at {get_settings().DATABASE_URL} ...")
    init_db()
    print("Database initialization complete!")

    if args.token_for is not None:
        print(create_access_token({"user_id": args.token_for, "user_type": args.tier}))


if __name__ == "__main__":
    main()
