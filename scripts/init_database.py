#!/usr/bin/env python3
"""
Database Initialization Script

Creates all shopdesk tables that do not exist yet.
"""

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from shopdesk.core.exceptions import DatabaseException  # noqa: E402
from shopdesk.core.logger import get_logger  # noqa: E402
from shopdesk.stores.database import create_tables, test_connection  # noqa: E402

logger = get_logger(__name__)


def main() -> None:
    """Test the connection, then create the tables."""
    try:
        logger.info("Starting database initialization...")

        connection_status = test_connection()
        logger.info("Database connection test passed: %s", connection_status)

        create_tables()

        logger.info("Database initialization completed successfully")

    except DatabaseException as e:
        logger.error("Database initialization failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
