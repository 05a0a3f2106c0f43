"""
QR code rendering for student ID cards.
"""
import io
import json
import logging
from typing import Any, Dict

import qrcode

from visitlog.config.settings import Config
from visitlog.utils.image_utils import encode_data_url

logger = logging.getLogger(__name__)


class QRCodeService:
    """
    Generates the QR codes printed on student cards.
    """

    def __init__(self, box_size: int = None, border: int = None):
        self.box_size = box_size or Config.QR_BOX_SIZE
        self.border = Config.QR_BORDER if border is None else border

    @staticmethod
    def payload_for(student: Dict[str, Any]) -> str:
        """The JSON text encoded in a student's QR code."""
        return json.dumps({"id": str(student["_id"]), "studentNo": student["studentNo"]})

    def render_png(self, text: str) -> bytes:
        """
        Render text as a QR code PNG.

        Args:
            text: Data to encode

        Returns:
            PNG file content
        """
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(text)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    def data_url_for(self, student: Dict[str, Any]) -> str:
        """PNG data URL of the student's QR code."""
        png = self.render_png(self.payload_for(student))
        logger.info(f"QR code generated for student {student.get('studentNo')}")
        return encode_data_url(png, "image/png")
