"""
Pydantic Models for Input Validation.
"""
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import Optional


def describe_error(e: ValidationError) -> str:
    """First validation problem as 'field: message'."""
    error = e.errors()[0]
    field = '.'.join(str(part) for part in error.get('loc', ()))
    return f"{field}: {error.get('msg')}" if field else error.get('msg', 'Invalid input')


def _blank_to_none(v):
    if v is None or isinstance(v, (dict, list)):
        return None
    return str(v).strip() or None


class ScanRequest(BaseModel):
    # Scanner output is untrusted; anything that is not text is treated as empty
    qr: Optional[str] = None

    @field_validator('qr', mode='before')
    @classmethod
    def coerce_text(cls, v):
        if v is None or isinstance(v, str):
            return v
        return None


class TimeInRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: Optional[str] = Field(None, alias='studentId')
    purpose: Optional[str] = None
    device_id: Optional[str] = Field(None, alias='deviceId')
    kiosk: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('student_id', 'purpose', 'device_id', 'kiosk', 'notes', mode='before')
    @classmethod
    def strip_blank(cls, v):
        return _blank_to_none(v)


class TimeOutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: Optional[str] = Field(None, alias='studentId')

    @field_validator('student_id', mode='before')
    @classmethod
    def strip_blank(cls, v):
        return _blank_to_none(v)


class StudentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_no: Optional[str] = Field(None, alias='studentNo')
    first_name: str = Field(..., min_length=1, alias='firstName')
    middle_name: Optional[str] = Field(None, alias='middleName')
    last_name: str = Field(..., min_length=1, alias='lastName')
    suffix: Optional[str] = None
    course: str = Field(..., min_length=1)
    level: str = Field(..., min_length=1)

    @field_validator('student_no', 'first_name', 'middle_name', 'last_name', 'suffix', 'course', 'level',
                     mode='before')
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class StudentUpdate(BaseModel):
    """Fields an admin may change on an existing student."""
    model_config = ConfigDict(populate_by_name=True)

    student_no: Optional[str] = Field(None, min_length=1, alias='studentNo')
    first_name: Optional[str] = Field(None, min_length=1, alias='firstName')
    middle_name: Optional[str] = Field(None, alias='middleName')
    last_name: Optional[str] = Field(None, min_length=1, alias='lastName')
    suffix: Optional[str] = None
    course: Optional[str] = Field(None, min_length=1)
    level: Optional[str] = Field(None, min_length=1)
    photo: Optional[str] = None

    def changes(self) -> dict:
        """Only the fields present in the request, keyed by stored name."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str = Field(..., min_length=1)


class SettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=3)
    current_password: Optional[str] = Field(None, alias='currentPassword')
    new_password: Optional[str] = Field(None, min_length=6, alias='newPassword')
