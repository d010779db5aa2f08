"""
Create an account from the command line.

Every /users route needs a bearer token, so the first account has to be made
here:  python scripts/create_user.py "Ada" ada@example.com 'S3cret!'
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from filmservice.database import init_db
from filmservice import users_db


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Create a FilmService user")
    parser.add_argument("name")
    parser.add_argument("email")
    parser.add_argument("password")
    args = parser.parse_args(argv)

    init_db()
    try:
        user_id = users_db.create(args.name, args.email, args.password)
    except ValueError as e:
        print(f"✗ Could not create user: {e}")
        return 1
    print(f"✓ Created user {args.email.strip().lower()} with id {user_id}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
