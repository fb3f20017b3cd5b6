#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Provision the MongoDB indexes and verify the unique constraints.

Attendance and ballot idempotency depend on two unique indexes. After
creating the indexes the script reads them back and exits with status 1 when
either is missing, so a deploy step fails instead of letting duplicate votes
through. ``--check-only`` skips creation and only verifies.
"""

import sys
import os
import argparse
import logging

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from domain.errors import PersistenceException
from services.mongodb import get_mongodb_service, close_mongodb_connection

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create and verify the assembly database indexes")
    parser.add_argument(
        "--check-only",
        action="store_true",
        help="only verify that the unique attendance and ballot indexes exist"
    )
    return parser.parse_args(argv)


def main(argv=None, mongodb_service=None) -> int:
    """Create indexes unless ``--check-only``, then verify the unique ones."""
    args = parse_args(argv)
    owns_connection = mongodb_service is None

    try:
        if owns_connection:
            mongodb_service = get_mongodb_service()

        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"MongoDB is not healthy: {health}")
            return 1

        logger.info(f"Connected to MongoDB - Database: {health['database']}")

        if not args.check_only:
            mongodb_service.create_indexes()

        missing = mongodb_service.missing_unique_indexes()
        if missing:
            logger.error(f"Unique indexes missing: {', '.join(missing)}")
            return 1

        logger.info("Unique attendance and ballot indexes are in place")
        return 0

    except PersistenceException as e:
        logger.error(f"Index provisioning failed: {e}")
        return 1
    finally:
        if owns_connection:
            close_mongodb_connection()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    sys.exit(main())
