"""
Create database tables directly
Run this if alembic migrations fail
"""

import logging

from app.database import Base, engine
from app import models  # noqa: F401  registers the tables on Base.metadata

logger = logging.getLogger(__name__)


def main():
    print("Creating vault tables...")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}", exc_info=True)
        raise SystemExit(1)

    print("SUCCESS: All tables created")
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")


if __name__ == "__main__":
    main()
