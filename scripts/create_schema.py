#!/usr/bin/env python3
"""
Create the processed_images table in Snowflake.

Safe to run repeatedly: the DDL uses CREATE TABLE IF NOT EXISTS.

Usage:
    python scripts/create_schema.py
    python scripts/create_schema.py --print   # only print the DDL

Requires:
    - .env file with Snowflake credentials (SNOWFLAKE_ACCOUNT, SNOWFLAKE_USER, ...)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from bgremoval.api.dependencies import snowflake_config_from_settings
from bgremoval.config.settings import get_settings
from bgremoval.infrastructure.snowflake.client import (
    SnowflakeConnectionError,
    create_snowflake_connection,
)
from bgremoval.infrastructure.snowflake.repositories.images import (
    CREATE_TABLE_SQL,
    ImageRecordRepository,
)

logger = logging.getLogger("create_schema")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Print the DDL instead of executing it",
    )
    args = parser.parse_args()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )

    if args.print_only:
        print(CREATE_TABLE_SQL.strip())
        return 0

    settings = get_settings()
    if settings.snowflake_mock_mode:
        logger.error("SNOWFLAKE_MOCK_MODE is on; nothing to create")
        return 1

    config = snowflake_config_from_settings(settings)

    try:
        with create_snowflake_connection(config=config) as conn:
            ImageRecordRepository(conn).create_table()
    except SnowflakeConnectionError as e:
        logger.error("Could not connect to Snowflake: %s", e)
        return 1

    logger.info(
        "Schema ready in %s.%s",
        config.database,
        config.schema,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
