"""
Service wiring for the web application.
"""
import logging
from typing import Dict, Optional

from visitlog.config.settings import Config
from visitlog.repositories.admin_repository import AdminRepository
from visitlog.repositories.mongo_repository import get_database
from visitlog.repositories.student_repository import StudentRepository
from visitlog.repositories.visit_repository import VisitRepository
from visitlog.services.activity_hub import ActivityHub
from visitlog.services.admin_service import AdminService
from visitlog.services.attendance_service import AttendanceService
from visitlog.services.auth_service import AuthService
from visitlog.services.dashboard_service import DashboardService
from visitlog.services.export_service import ExportService
from visitlog.services.scan_service import ScanService
from visitlog.services.student_service import StudentService
from visitlog.services.token_revocation import build_revocation_store

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Holds one instance of every service shared by the API resources."""

    def __init__(self, student_repo, visit_repo, admin_repo, revocation_store,
                 storage=None, hub: Optional[ActivityHub] = None):
        self.student_repo = student_repo
        self.visit_repo = visit_repo
        self.admin_repo = admin_repo
        self.revocation_store = revocation_store
        self.hub = hub or ActivityHub()

        self.scan = ScanService(student_repo, visit_repo)
        self.attendance = AttendanceService(student_repo, visit_repo, hub=self.hub)
        self.students = StudentService(student_repo, visit_repo, storage=storage)
        self.auth = AuthService(admin_repo, revocation_store)
        self.admin = AdminService(admin_repo)
        self.dashboard = DashboardService(student_repo, visit_repo)
        self.export = ExportService(student_repo, visit_repo)

    def resource_kwargs(self) -> Dict[str, object]:
        return {'services': self}

    def repositories(self) -> list:
        return [self.student_repo, self.visit_repo, self.admin_repo, self.revocation_store]

    def ensure_indexes(self) -> None:
        """Create MongoDB indexes; failures are logged so the app still starts."""
        for repo in self.repositories():
            ensure = getattr(repo, 'ensure_indexes', None)
            if ensure is None:
                continue
            try:
                ensure()
            except Exception as e:
                logger.error(f"Failed to ensure indexes for {type(repo).__name__}: {e}")


def _build_storage():
    if not Config.AWS_S3_BUCKET:
        logger.warning("AWS_S3_BUCKET not set; photo uploads are disabled")
        return None
    from visitlog.repositories.s3_repository import S3Repository
    return S3Repository()


def build_services(db=None) -> ServiceContainer:
    """Services backed by MongoDB and S3 using the process-wide client."""
    db = db if db is not None else get_database()
    return ServiceContainer(
        student_repo=StudentRepository(db),
        visit_repo=VisitRepository(db),
        admin_repo=AdminRepository(db),
        revocation_store=build_revocation_store(Config.TOKEN_REVOCATION_BACKEND, db),
        storage=_build_storage(),
    )
