"""Create an account directly in the database, e.g. the first admin.

Usage:
    python add_user.py admin@example.com "s3cret-pass" "Ada Admin" --role admin
"""
import argparse

from sqlmodel import Session, select

from taskapi.config import load_settings
from taskapi.database import create_db_engine, create_tables
from taskapi.models import User, UserRole
from taskapi.routers.auth import get_password_hash


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a task API user")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("name")
    parser.add_argument("--role", choices=[role.value for role in UserRole], default=UserRole.USER.value)
    args = parser.parse_args()

    engine = create_db_engine(load_settings().database_url)
    # Create tables if not exist
    create_tables(engine)

    with Session(engine) as db:
        existing_user = db.exec(select(User).where(User.email == args.email)).first()
        if existing_user:
            print(f"User already exists: {args.email}")
            return

        user = User(
            email=args.email,
            name=args.name,
            hashed_password=get_password_hash(args.password),
            role=UserRole(args.role),
        )
        db.add(user)
        db.commit()
        print(f"User created: {args.email} ({args.role})")


if __name__ == "__main__":
    main()
