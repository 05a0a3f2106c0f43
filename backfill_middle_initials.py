#!/usr/bin/env python3
"""
Fill in middleInitial for students enrolled before it was derived automatically.
"""
import logging
import sys

from visitlog.config.settings import Config
from visitlog.repositories.mongo_repository import close_client
from visitlog.repositories.student_repository import StudentRepository
from visitlog.services.maintenance import backfill_middle_initials
from visitlog.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    setup_logging(Config.LOG_LEVEL)
    try:
        count = backfill_middle_initials(StudentRepository())
    except Exception as e:
        logger.error(f"Backfill failed: {e}")
        return 1
    finally:
        close_client()
    print(f"Backfilled middleInitial for {count} students")
    return 0


if __name__ == "__main__":
    sys.exit(main())
