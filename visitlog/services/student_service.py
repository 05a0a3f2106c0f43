"""
Student Service
Enrollment, profile updates, photos, QR codes and per-student visit history.
"""
import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from visitlog.config.settings import Config
from visitlog.exceptions.base import ConflictError, NotFoundError, ValidationError
from visitlog.schemas.models import StudentCreate, StudentUpdate, describe_error
from visitlog.services.attendance_service import visit_row
from visitlog.services.qr_code_service import QRCodeService
from visitlog.utils.date_utils import day_bounds
from visitlog.utils.image_utils import decode_data_url, prepare_photo
from visitlog.utils.pagination import page_envelope, parse_page_request
from visitlog.utils.string_utils import derive_middle_initial

logger = logging.getLogger(__name__)

_HTTP_URL = re.compile(r'^https?://', re.IGNORECASE)


def format_student_no(day: datetime, seq: int, prefix: str = None) -> str:
    """Student number for a creation day and daily sequence, e.g. S25-281101."""
    prefix = Config.STUDENT_NO_PREFIX if prefix is None else prefix
    return f"{prefix}{day:%y}-{day:%d}{day:%m}{seq:02d}"


class StudentService:
    """Business logic for the student directory."""

    def __init__(self, student_repo, visit_repo, storage=None, qr_service: QRCodeService = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.student_repo = student_repo
        self.visit_repo = visit_repo
        self.storage = storage
        self.qr_service = qr_service or QRCodeService()
        self.clock = clock

    def get(self, student_id: str) -> Dict[str, Any]:
        student = self.student_repo.find_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")
        return student

    def list_students(self) -> list:
        return self.student_repo.list_all()

    def generate_student_no(self) -> str:
        """
        Next free student number for today.

        The daily sequence starts after the students already created today and
        is bumped past numbers that are taken.
        """
        now = self.clock()
        start, end = day_bounds(now.date())
        seq = self.student_repo.count_created_between(start, end) + 1
        candidate = format_student_no(now, seq)

        attempts = 0
        while self.student_repo.exists(candidate):
            attempts += 1
            if attempts > Config.STUDENT_NO_MAX_ATTEMPTS:
                logger.warning(f"Gave up looking for a free student number after {attempts} attempts")
                break
            seq += 1
            candidate = format_student_no(now, seq)
        return candidate

    def create(self, data: Mapping[str, Any], photo: Optional[bytes] = None) -> Dict[str, Any]:
        """
        Enroll a student.

        Args:
            data: firstName, lastName, course and level are required;
                  studentNo is generated when omitted
            photo: Optional image uploaded with the form

        Raises:
            ValidationError: Missing required fields
            ConflictError: The student number is already taken
        """
        try:
            request = StudentCreate.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ValidationError("Missing required fields", details={"error": describe_error(e)})

        student_no = request.student_no or self.generate_student_no()
        if self.student_repo.exists(student_no):
            raise ConflictError("Student with this number already exists")

        document = {
            'studentNo': student_no,
            'firstName': request.first_name,
            'middleName': request.middle_name,
            'lastName': request.last_name,
            'suffix': request.suffix,
            'course': request.course,
            'level': request.level,
        }
        initial = derive_middle_initial(request.middle_name)
        if initial:
            document['middleInitial'] = initial

        student = self.student_repo.create(document)
        changes = {'qrCode': self.qr_service.data_url_for(student)}

        if photo:
            # Enrollment succeeds even when the photo cannot be stored
            try:
                changes['photo'] = self._store_photo(student, photo)
            except Exception as e:
                logger.error(f"Error uploading photo during enrollment of {student_no}: {e}")

        return self.student_repo.update(student['_id'], changes) or {**student, **changes}

    def update(self, student_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            changes = StudentUpdate.model_validate(dict(data)).changes()
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid student data: {describe_error(e)}")

        if 'middleName' in changes:
            changes['middleInitial'] = derive_middle_initial(changes['middleName'])

        if not changes:
            return self.get(student_id)

        student = self.student_repo.update(student_id, changes)
        if not student:
            raise NotFoundError("Student not found")
        logger.info(f"Student {student.get('studentNo')} updated: {sorted(changes)}")
        return student

    def _store_photo(self, student: Dict[str, Any], data: bytes) -> str:
        if self.storage is None:
            raise ValidationError("Photo storage is not configured")
        if len(data) > Config.PHOTO_MAX_UPLOAD_BYTES:
            raise ValidationError("Photo exceeds the maximum upload size")
        key = f"students/{student.get('studentNo') or student['_id']}.jpg"
        return self.storage.upload_bytes(key, prepare_photo(data), "image/jpeg")

    def upload_photo(self, student_id: str, file_data: Optional[bytes] = None,
                     photo: Optional[str] = None) -> Dict[str, Any]:
        """
        Replace a student's photo.

        Accepts uploaded file content, a base64 image data URL, or an http(s)
        URL which is stored as given.

        Raises:
            NotFoundError: Unknown student
            ValidationError: No photo or an unreadable one
            ExternalServiceError: Storage upload failed
        """
        student = self.get(student_id)

        if file_data:
            url = self._store_photo(student, file_data)
        elif not photo:
            raise ValidationError("Photo missing")
        elif _HTTP_URL.match(photo):
            url = photo
        else:
            _, data = decode_data_url(photo)
            url = self._store_photo(student, data)

        return self.student_repo.update(student['_id'], {'photo': url})

    def qr_png(self, student_id: str) -> bytes:
        """The stored QR code as PNG bytes."""
        student = self.get(student_id)
        if not student.get('qrCode'):
            raise NotFoundError("QR not found")
        try:
            mime, data = decode_data_url(student['qrCode'])
        except ValidationError:
            raise ValidationError("Invalid QR format")
        if mime != "image/png":
            raise ValidationError("Invalid QR format")
        return data

    def history(self, student_id: str, args: Mapping[str, Any]) -> Dict[str, Any]:
        """Paginated visits of one student; ``q`` searches purpose and notes."""
        student = self.get(student_id)
        page_request = parse_page_request(args, Config.HISTORY_DEFAULT_LIMIT)
        query = (args.get('q') or '').strip()

        rows, total = self.visit_repo.search(
            student_ids=[student['_id']],
            text=query or None,
            sort_by=page_request.sort_by,
            descending=page_request.descending,
            skip=page_request.skip,
            limit=page_request.limit,
        )
        return page_envelope([visit_row(row, student) for row in rows], page_request, total)
