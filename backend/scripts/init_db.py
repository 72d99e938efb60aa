#!/usr/bin/env python3
"""
Create every table defined in buysell.models

Existing tables are left untouched (create_all only adds missing ones).

Usage:
    export DATABASE_URL="postgresql://..."
    python3 backend/scripts/init_db.py
"""
import logging
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from buysell.core.database import Base, engine  # noqa: E402
import buysell.models  # noqa: E402,F401  (registers the tables on Base.metadata)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger("init_db")


def init_db():
    logger.info(f"Creating {len(Base.metadata.tables)} tables")
    Base.metadata.create_all(bind=engine)
    for table in sorted(Base.metadata.tables):
        logger.info(f"  {table}")
    logger.info("Database schema ready")


if __name__ == "__main__":
    init_db()
