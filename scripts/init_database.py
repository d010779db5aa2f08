"""
Initialize the database: create any missing tables.
"""
import sys
import os

# Add parent directory to path so we can import filmservice modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from filmservice.database import init_db, DB_URL


def main() -> int:
    print("Initializing database...")
    try:
        init_db()
    except Exception as e:
        print(f"\n✗ Error: {e}")
        return 1
    print(f"\n✓ Database initialized at {DB_URL}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
