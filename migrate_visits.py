#!/usr/bin/env python3
"""
Copy visits embedded on student records into the visits collection.
Safe to re-run: visits already migrated are skipped.
"""
import logging
import sys

from visitlog.config.settings import Config
from visitlog.repositories.mongo_repository import close_client, get_database
from visitlog.repositories.student_repository import StudentRepository
from visitlog.repositories.visit_repository import VisitRepository
from visitlog.services.maintenance import migrate_embedded_visits
from visitlog.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    setup_logging(Config.LOG_LEVEL)
    db = get_database()
    try:
        created = migrate_embedded_visits(StudentRepository(db), VisitRepository(db))
    except Exception as e:
        logger.error(f"Migration error: {e}")
        return 1
    finally:
        close_client()
    print(f"Created {created} visit documents")
    return 0


if __name__ == "__main__":
    sys.exit(main())
