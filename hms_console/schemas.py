# hms_console/schemas.py
import re
from datetime import date
from typing import ClassVar, List, Optional, Dict, Any
from typing_extensions import Annotated
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, BeforeValidator, field_validator
from enum import Enum

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-\(\)]+$")

# --- Enum Classes ---
class UserRole(str, Enum):
    admin = "admin"
    doctor = "doctor"

class DoctorStatus(str, Enum):
    active = "Active"
    inactive = "Inactive"

class AppointmentStatus(str, Enum):
    scheduled = "Scheduled"
    completed = "Completed"
    cancelled = "Cancelled"


def _reference_id(value):
    """Foreign keys arrive either as a bare id or as the embedded document."""
    if isinstance(value, dict):
        value = value.get("_id", value.get("id"))
    if value is None or value == "":
        return None
    return str(value)


def _lenient_int(value):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _lenient_str(value):
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return None
    return str(value)


RecordId = Annotated[Optional[str], BeforeValidator(_reference_id)]
Text = Annotated[Optional[str], BeforeValidator(_lenient_str)]


# --- Base Schemas ---
class BaseSchema(BaseModel):
    """Records as the server sends them: unknown fields kept, alternative names accepted."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: RecordId = Field(None, validation_alias=AliasChoices("_id", "id"))


# --- Session Schemas ---
class Session(BaseModel):
    is_authenticated: bool = False
    token: Optional[str] = None
    email: str = ""
    role: Optional[UserRole] = None

    def public(self) -> Dict[str, Any]:
        """Session fields safe to hand to the browser (never the token)."""
        return {
            "is_authenticated": self.is_authenticated,
            "email": self.email,
            "role": self.role.value if self.role else None,
        }


class LoginRequest(BaseModel):
    email: str
    password: str
    role: UserRole = UserRole.doctor

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Email is required")
        if not EMAIL_PATTERN.search(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("password", mode="before")
    @classmethod
    def validate_password(cls, v):
        if not v:
            raise ValueError("Password is required")
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters long")
        return v


class LoginResponse(BaseModel):
    """Body of POST /auth/login."""
    model_config = ConfigDict(extra="allow")

    success: bool = False
    token: Optional[str] = None
    role: Optional[str] = None
    user: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


# --- Record Schemas ---
class Patient(BaseSchema):
    name: Text = None
    email: Text = None
    phone: Text = Field(None, validation_alias=AliasChoices("phone", "phno"))
    age: Annotated[Optional[int], BeforeValidator(_lenient_int)] = None
    gender: Text = None
    address: Text = None
    blood_group: Text = Field(None, validation_alias=AliasChoices("bloodGroup", "bg", "blood_group"))
    emergency_contact: Text = Field(None, validation_alias=AliasChoices("emergencyContact", "emerno", "emergency_contact"))
    medical_history: Text = Field(None, validation_alias=AliasChoices("medicalHistory", "medical_history"))
    created_at: Text = Field(None, validation_alias=AliasChoices("createdAt", "created_at", "registrationDate"))


class Doctor(BaseSchema):
    name: Text = None
    email: Text = None
    phone: Text = Field(None, validation_alias=AliasChoices("phone", "phno"))
    specialization: Text = Field(None, validation_alias=AliasChoices("specialization", "spec"))
    department_id: RecordId = Field(None, validation_alias=AliasChoices("departmentId", "department", "dept", "department_id"))
    experience: Text = Field(None, validation_alias=AliasChoices("experience", "exp"))
    qualification: Text = Field(None, validation_alias=AliasChoices("qualification", "qual"))
    status: Text = None

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() == "active"


class Department(BaseSchema):
    name: Text = Field(None, validation_alias=AliasChoices("dept", "name"))
    description: Text = None
    # Derived on every load from the doctor and appointment lists; never sent to the server
    doctor_count: int = 0
    appointment_count: int = 0


class Appointment(BaseSchema):
    patient_id: RecordId = Field(None, validation_alias=AliasChoices("patient", "patientId", "patient_id"))
    doctor_id: RecordId = Field(None, validation_alias=AliasChoices("doctor", "doctorId", "doctor_id"))
    department_id: RecordId = Field(None, validation_alias=AliasChoices("dept", "department", "departmentId", "department_id"))
    date: Text = None
    time: Text = None
    status: Text = None
    reason: Text = Field(None, validation_alias=AliasChoices("rsv", "reason"))
    notes: Text = None

    @property
    def day(self) -> Optional[str]:
        """YYYY-MM-DD part of the appointment date (the server may send a full timestamp)."""
        return self.date[:10] if self.date else None


# --- Form Schemas (local validation, run before any write) ---
class FormSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    required_messages: ClassVar[Dict[str, str]] = {}

    @classmethod
    def _required(cls, v, field_name):
        v = "" if v is None else str(v).strip()
        if not v:
            raise ValueError(cls.required_messages.get(field_name, f"{field_name} is required"))
        return v


def _email(v):
    v = "" if v is None else str(v).strip()
    if not v:
        raise ValueError("Email is required")
    if not EMAIL_PATTERN.search(v):
        raise ValueError("Please enter a valid email address")
    return v


def _phone(v, required="Phone number is required", invalid="Please enter a valid phone number"):
    v = "" if v is None else str(v).strip()
    if not v:
        raise ValueError(required)
    if not PHONE_PATTERN.match(v):
        raise ValueError(invalid)
    return v


class PatientForm(FormSchema):
    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "address": "Address is required",
    }

    name: str
    email: str
    phone: str
    age: int
    gender: str = "Male"
    address: str
    blood_group: str = "A+"
    emergency_contact: str
    medical_history: str = ""

    @field_validator("name", "address", mode="before")
    @classmethod
    def validate_required(cls, v, info):
        return cls._required(v, info.field_name)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        return _email(v)

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v):
        return _phone(v)

    @field_validator("emergency_contact", mode="before")
    @classmethod
    def validate_emergency_contact(cls, v):
        return _phone(v, invalid="Please enter a valid emergency contact number",
                      required="Please enter a valid emergency contact number")

    @field_validator("age", mode="before")
    @classmethod
    def validate_age(cls, v):
        try:
            age = int(str(v).strip())
        except (TypeError, ValueError):
            raise ValueError("Please enter a valid age (1-120)")
        if age < 1 or age > 120:
            raise ValueError("Please enter a valid age (1-120)")
        return age

    @field_validator("gender", "blood_group", "medical_history", mode="before")
    @classmethod
    def strip_optional(cls, v, info):
        v = "" if v is None else str(v).strip()
        return v or cls.model_fields[info.field_name].default


class DoctorForm(FormSchema):
    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "specialization": "Specialization is required",
        "department_id": "Department is required",
        "experience": "Experience is required",
        "qualification": "Qualification is required",
    }

    name: str
    email: str
    phone: str
    specialization: str
    department_id: str
    experience: str
    qualification: str
    status: DoctorStatus = DoctorStatus.active

    @field_validator("name", "specialization", "department_id", "experience", "qualification", mode="before")
    @classmethod
    def validate_required(cls, v, info):
        return cls._required(v, info.field_name)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        return _email(v)

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v):
        return _phone(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return DoctorStatus.active if str(v or "active").lower() == "active" else DoctorStatus.inactive


class DepartmentForm(FormSchema):
    required_messages: ClassVar[Dict[str, str]] = {"name": "Department name is required"}

    name: str
    description: str

    @field_validator("name", mode="before")
    @classmethod
    def validate_required(cls, v, info):
        return cls._required(v, info.field_name)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        v = "" if v is None else str(v).strip()
        if len(v) < 10:
            raise ValueError("Description is required and must be at least 10 characters long")
        return v


class AppointmentForm(FormSchema):
    required_messages: ClassVar[Dict[str, str]] = {
        "patient_id": "Patient is required",
        "doctor_id": "Doctor is required",
        "department_id": "Department is required",
        "time": "Time is required",
        "reason": "Reason is required",
    }

    patient_id: str
    doctor_id: str
    department_id: str
    date: date
    time: str
    status: AppointmentStatus = AppointmentStatus.scheduled
    reason: str
    notes: str = ""

    @field_validator("patient_id", "doctor_id", "department_id", "time", "reason", mode="before")
    @classmethod
    def validate_required(cls, v, info):
        return cls._required(v, info.field_name)

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        if isinstance(v, date):
            selected = v
        else:
            v = "" if v is None else str(v).strip()
            if not v:
                raise ValueError("Date is required")
            try:
                selected = date.fromisoformat(v[:10])
            except ValueError:
                raise ValueError("Please enter a valid date")
        if selected < date.today():
            raise ValueError("Date cannot be in the past")
        return selected

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        v = str(v or "Scheduled").strip().capitalize()
        if v not in [s.value for s in AppointmentStatus]:
            raise ValueError("Please choose a valid status")
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, v):
        return "" if v is None else str(v)


# --- Dashboard Schemas ---
class RecentAppointment(BaseModel):
    id: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    status: Optional[str] = None
    patient_name: str
    department_name: str


class DashboardStats(BaseModel):
    total_patients: int = 0
    total_doctors: int = 0
    total_appointments: int = 0
    total_departments: int = 0
    today_appointments: int = 0
    active_doctors: int = 0
    recent_appointments: List[RecentAppointment] = []
