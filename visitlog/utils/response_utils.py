"""
Response utility functions for standardized API responses.
"""
from datetime import date, datetime
from typing import Tuple, Dict, Any

from bson import ObjectId


def to_json_safe(value: Any) -> Any:
    """Convert Mongo documents (ObjectId, datetime) into JSON-serializable values."""
    if isinstance(value, dict):
        return {key: to_json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_safe(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def success_response(message: str = "Success", data: Any = None, status_code: int = 200) -> Tuple[Dict[str, Any], int]:
    """
    Standard Success Response.
    """
    response = {
        "success": True,
        "message": message,
        "data": to_json_safe(data) if data is not None else {}
    }
    return response, status_code


def error_response(message: str, status_code: int = 500, code: str = "ERROR", error_details: Any = None) -> Tuple[Dict[str, Any], int]:
    """
    Standard Error Response.
    """
    response = {
        "success": False,
        "error": {
            "code": code,
            "message": message
        }
    }
    if error_details:
        response["error"]["details"] = to_json_safe(error_details)

    return response, status_code
