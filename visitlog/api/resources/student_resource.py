"""
Student API Resources.
"""
from flask import make_response, request
import logging

from visitlog.api.resources.base import ApiResource, json_body
from visitlog.middleware.auth import token_required
from visitlog.utils.response_utils import success_response

logger = logging.getLogger(__name__)


def _uploaded_photo():
    """Bytes of a multipart ``photo`` file field, if one was sent."""
    photo = request.files.get('photo')
    if not photo or not photo.filename:
        return None
    return photo.read() or None


class StudentListResource(ApiResource):

    def get(self):
        students = self.services.students.list_students()
        return success_response("Students fetched successfully", {"students": students})

    @token_required
    def post(self):
        """
        Enroll a student from JSON or a multipart form with an optional photo.
        """
        if request.mimetype == 'multipart/form-data' or request.form:
            data = request.form.to_dict()
        else:
            data = json_body()
        student = self.services.students.create(data, photo=_uploaded_photo())
        return success_response("Student created successfully", student, 201)


class StudentNumberResource(ApiResource):

    @token_required
    def get(self):
        return success_response("Student number generated", {"studentNo": self.services.students.generate_student_no()})


class StudentResource(ApiResource):

    def get(self, student_id: str):
        return success_response("Student fetched successfully", self.services.students.get(student_id))

    @token_required
    def patch(self, student_id: str):
        student = self.services.students.update(student_id, json_body())
        return success_response("Student updated successfully", student)


class StudentPhotoResource(ApiResource):

    @token_required
    def post(self, student_id: str):
        """Upload a photo file, or send {photo: <data URL or http URL>}."""
        file_data = _uploaded_photo()
        photo = None
        if file_data is None:
            photo = json_body().get('photo') or request.form.get('photo')
        student = self.services.students.upload_photo(student_id, file_data=file_data, photo=photo)
        return success_response("Photo saved", student)


class StudentHistoryResource(ApiResource):

    def get(self, student_id: str):
        history = self.services.students.history(student_id, request.args)
        return success_response("History fetched successfully", history)


class StudentQRResource(ApiResource):

    @token_required
    def get(self, student_id: str):
        """The student's QR code as a PNG image."""
        response = make_response(self.services.students.qr_png(student_id))
        response.headers['Content-Type'] = 'image/png'
        return response
