"""
Database initialization script.

Run this module to create all required tables in the database. Pass
``--admin USERNAME EMAIL PASSWORD`` to bootstrap an administrator account.
"""
import argparse

from cards_database.db import engine, SessionLocal
from cards_database.models import Base

# PUBLIC_INTERFACE
def init_db():
    """Initializes the database by creating all tables if they do not exist."""
    Base.metadata.create_all(bind=engine)

def main(argv=None):
    parser = argparse.ArgumentParser(description="Create the card platform tables.")
    parser.add_argument("--admin", nargs=3, metavar=("USERNAME", "EMAIL", "PASSWORD"),
                        help="create (or promote) an admin account")
    args = parser.parse_args(argv)

    init_db()
    print("Database tables created successfully.")

    if args.admin:
        from cards_backend.services.users_service import ensure_admin

        db = SessionLocal()
        try:
            user = ensure_admin(db, *args.admin)
            print(f"Admin account ready: {user.username}")
        finally:
            db.close()

if __name__ == "__main__":
    main()
