from __future__ import annotations

import argparse
import os
import sys

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker


def _load_database_url(cli_url: str | None) -> str:
    if cli_url:
        return cli_url
    env_url = os.getenv("DATABASE_URL") or os.getenv("SQLALCHEMY_DATABASE_URL")
    if env_url:
        return env_url
    raise RuntimeError("No DATABASE_URL configured; pass --url.")


def _reset_schema(database_url: str, seed: bool) -> None:
    os.environ["DATABASE_URL"] = database_url
    from backend.app.db import Base
    from backend.app import models  # noqa: F401  (registers tables)
    from backend.app.services.catalog_seed import seed_catalog

    engine = create_engine(database_url, future=True)
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    try:
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        if seed:
            session = Session()
            try:
                created = seed_catalog(session)
                print(f"Seeded: {created}")
            finally:
                session.close()
    finally:
        engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Reset the development database.")
    parser.add_argument("--url", help="Override the database URL.")
    parser.add_argument("--yes", action="store_true", help="Confirm destructive reset.")
    parser.add_argument("--seed", action="store_true", help="Seed room types, rooms, extras and staff.")
    args = parser.parse_args()

    if not args.yes:
        print("Refusing to reset database without --yes.")
        return 1

    database_url = _load_database_url(args.url)
    _reset_schema(database_url, args.seed)

    print("DONE")
    print(f"Database URL: {make_url(database_url).render_as_string(hide_password=True)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
