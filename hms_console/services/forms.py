# hms_console/services/forms.py
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, Union

from pydantic import ValidationError

from .. import schemas
from ..exceptions import ApiError, FormStateError
from ..schemas import UserRole
from .api_client import ApiGatewayClient

logger = logging.getLogger(__name__)

FORM_ERROR = "__all__"


# --- Form states ---
@dataclass(frozen=True)
class Closed:
    pass


@dataclass
class Open:
    draft: Dict[str, Any]
    initial: Dict[str, Any]
    identity: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def dirty(self) -> bool:
        return self.draft != self.initial


@dataclass
class Submitting:
    draft: Dict[str, Any]
    initial: Dict[str, Any]
    identity: Optional[str] = None


FormState = Union[Closed, Open, Submitting]
CLOSED = Closed()


def validation_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a pydantic ValidationError into {field: message}, first message per field."""
    errors = {}
    for err in exc.errors():
        name = str(err["loc"][0]) if err["loc"] else FORM_ERROR
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(name, message)
    return errors


# --- Entity forms ---
class EntityForm(ABC):
    """What one entity's form looks like: fields, validation and wire payload.

    Subclasses name the form schema and defaults and build the wire payload.
    """

    schema: Type[schemas.FormSchema]
    defaults: Dict[str, Any] = {}
    # field -> roles allowed to change it; fields not listed are editable by everyone
    restricted_fields: Dict[str, Tuple[UserRole, ...]] = {}

    def __init__(self, collection_path: str, create_path: Optional[str] = None):
        self.collection_path = collection_path
        self.create_path = create_path or collection_path

    def update_path(self, identity: str) -> str:
        return f"{self.collection_path}/{identity}"

    def editable(self, record: schemas.BaseSchema) -> Dict[str, Any]:
        return {name: getattr(record, name, None) or default for name, default in self.defaults.items()}

    @abstractmethod
    def payload(self, data: schemas.FormSchema, role: Optional[UserRole], initial: Dict[str, Any],
                identity: Optional[str]) -> Dict[str, Any]:
        """Request body for a validated draft, in the records API's field names."""

    def can_edit(self, name: str, role: Optional[UserRole]) -> bool:
        allowed = self.restricted_fields.get(name)
        return allowed is None or role in allowed


class PatientEntityForm(EntityForm):
    schema = schemas.PatientForm
    defaults = {
        "name": "",
        "email": "",
        "phone": "",
        "age": "",
        "gender": "Male",
        "address": "",
        "blood_group": "A+",
        "emergency_contact": "",
        "medical_history": "",
    }

    def payload(self, data, role, initial, identity):
        body = {
            "name": data.name,
            "email": data.email,
            "phno": data.phone,
            "age": data.age,
            "gender": data.gender.lower(),
            "bg": data.blood_group,
            "address": data.address,
            "emerno": data.emergency_contact,
        }
        if data.medical_history:
            body["medical_history"] = data.medical_history
        return body


class DoctorEntityForm(EntityForm):
    schema = schemas.DoctorForm
    defaults = {
        "name": "",
        "email": "",
        "phone": "",
        "specialization": "",
        "department_id": "",
        "experience": "",
        "qualification": "",
        "status": "Active",
    }

    def editable(self, record):
        values = super().editable(record)
        values["status"] = "Active" if record.is_active else "Inactive"
        return values

    def payload(self, data, role, initial, identity):
        return {
            "name": data.name,
            "email": data.email,
            # the records API stores the national number only
            "phno": re.sub(r"\D", "", data.phone)[-10:],
            "spec": data.specialization,
            "dept": data.department_id,
            "exp": data.experience,
            "qual": data.qualification,
            "status": data.status.value,
        }


class DepartmentEntityForm(EntityForm):
    schema = schemas.DepartmentForm
    defaults = {"name": "", "description": ""}

    def payload(self, data, role, initial, identity):
        return {"dept": data.name, "description": data.description}


class AppointmentEntityForm(EntityForm):
    schema = schemas.AppointmentForm
    defaults = {
        "patient_id": "",
        "doctor_id": "",
        "department_id": "",
        "date": "",
        "time": "",
        "status": "Scheduled",
        "reason": "",
        "notes": "",
    }
    restricted_fields = {"notes": (UserRole.doctor,)}

    def editable(self, record):
        values = super().editable(record)
        values["date"] = record.day or ""
        return values

    def payload(self, data, role, initial, identity):
        body = {
            "patient": data.patient_id,
            "doctor": data.doctor_id,
            "dept": data.department_id,
            "date": data.date.isoformat(),
            "time": data.time,
            "status": data.status.value,
            "rsv": data.reason,
        }
        if self.can_edit("notes", role):
            body["notes"] = data.notes
        elif identity:
            # admins resend the stored notes untouched
            body["notes"] = initial.get("notes") or ""
        return body


# --- Controller ---
class FormController:
    """Create/edit lifecycle of one entity form: Closed -> Open -> Submitting -> Closed."""

    def __init__(self, form: EntityForm, client: ApiGatewayClient,
                 on_saved: Optional[Callable[[], Awaitable[Any]]] = None):
        self.form = form
        self.client = client
        self.on_saved = on_saved
        self.state: FormState = CLOSED

    @property
    def role(self) -> Optional[UserRole]:
        return self.client.session.current().role

    def _require_open(self, action: str) -> Open:
        if not isinstance(self.state, Open):
            raise FormStateError(f"Cannot {action}: form is {type(self.state).__name__.lower()}")
        return self.state

    def open_for_create(self) -> Open:
        self.state = Open(draft=dict(self.form.defaults), initial=dict(self.form.defaults))
        return self.state

    def open_for_edit(self, record: schemas.BaseSchema) -> Open:
        if not record.id:
            raise FormStateError("Cannot edit a record without an id")
        values = self.form.editable(record)
        self.state = Open(draft=dict(values), initial=dict(values), identity=record.id)
        return self.state

    def change_field(self, name: str, value: Any) -> Open:
        state = self._require_open("change a field")
        if name not in state.draft:
            raise FormStateError(f"Unknown field: {name}")
        if not self.form.can_edit(name, self.role):
            state.errors[name] = f"The {name} field can only be edited by a doctor"
            return state
        state.draft[name] = value
        state.errors.pop(name, None)
        return state

    def reset(self) -> Open:
        state = self._require_open("reset")
        self.state = Open(draft=dict(state.initial), initial=state.initial, identity=state.identity)
        return self.state

    def cancel(self):
        """Throw the draft away; never talks to the server."""
        self.state = CLOSED

    def validate(self, draft: Dict[str, Any]):
        try:
            return self.form.schema.model_validate(draft), {}
        except ValidationError as e:
            return None, validation_errors(e)

    async def submit(self) -> bool:
        state = self._require_open("submit")
        data, errors = self.validate(state.draft)
        if errors:
            self.state = Open(draft=state.draft, initial=state.initial, identity=state.identity, errors=errors)
            return False

        role = self.role
        generation = self.client.session.generation
        payload = self.form.payload(data, role, state.initial, state.identity)
        self.state = Submitting(draft=state.draft, initial=state.initial, identity=state.identity)
        try:
            if state.identity:
                await self.client.put(self.form.update_path(state.identity), payload)
            else:
                await self.client.post(self.form.create_path, payload)
        except ApiError as e:
            if self.client.session.generation != generation:
                # the session ended underneath us; nothing to show the form to
                self.state = CLOSED
            else:
                message = e.message or "Failed to save record."
                self.state = Open(draft=state.draft, initial=state.initial, identity=state.identity,
                                  errors={FORM_ERROR: message})
            logger.warning(f"Saving via {self.form.create_path} failed: {e.kind}: {e}")
            return False

        self.state = CLOSED
        if self.on_saved is not None:
            await self.on_saved()
        return True
