# hms_console/services/screens.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .. import schemas
from ..exceptions import (
    ApiError, NetworkError, UnauthorizedError, ForbiddenError, ServerError, DepartmentInUseError,
)
from .api_client import ApiGatewayClient
from .forms import (
    FormController, EntityForm, Open, Submitting,
    PatientEntityForm, DoctorEntityForm, DepartmentEntityForm, AppointmentEntityForm,
)
from .loaders import Loaders, load_concurrently
from .resolver import resolve_name, find_by_id, department_counters

logger = logging.getLogger(__name__)


@dataclass
class ScreenError:
    kind: str
    message: str

    def as_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "retry": True}


def describe_error(error: ApiError, what: str) -> ScreenError:
    """Message shown on a screen for a failed call."""
    if isinstance(error, UnauthorizedError):
        message = "Unauthorized: Please log in to access this feature."
    elif isinstance(error, ForbiddenError):
        message = "Forbidden: You do not have permission to perform this action."
    elif isinstance(error, NetworkError):
        message = "Network error: Unable to connect to the server."
    elif isinstance(error, ServerError):
        message = f"Server error while loading {what}: {error.message or 'Internal server error'}."
    else:
        message = f"Failed to load {what}: {error.message or 'Unexpected error'}."
    return ScreenError(kind=error.kind, message=message)


def form_view(controller: FormController) -> Dict[str, Any]:
    state = controller.state
    if isinstance(state, Open):
        role = controller.role
        return {
            "state": "open",
            "mode": "edit" if state.identity else "create",
            "identity": state.identity,
            "draft": dict(state.draft),
            "errors": dict(state.errors),
            "dirty": state.dirty,
            "read_only": [name for name in state.draft if not controller.form.can_edit(name, role)],
        }
    if isinstance(state, Submitting):
        return {"state": "submitting", "identity": state.identity, "draft": dict(state.draft)}
    return {"state": "closed"}


class ManagementScreen:
    """One management tab: a list of records, the lists it cross-references, and a form."""

    name = ""
    title = ""
    primary = ""
    references: Tuple[str, ...] = ()
    search_fields: Tuple[str, ...] = ()

    def __init__(self, client: ApiGatewayClient, loaders: Loaders, form: EntityForm):
        self.client = client
        self.loaders = loaders
        self.form = FormController(form, client, on_saved=self.load)
        self.rows: List[schemas.BaseSchema] = []
        self.lists: Dict[str, List[schemas.BaseSchema]] = {}
        self.loading = False
        self.error: Optional[ScreenError] = None
        self.search = ""

    @property
    def session(self):
        return self.client.session

    async def load(self):
        """Fetch the screen's lists concurrently; stale answers from an ended session are dropped."""
        generation = self.session.generation
        self.loading = True
        results = await load_concurrently(self.loaders.by_name(self.primary, *self.references))
        if self.session.generation != generation:
            logger.debug(f"Discarding {self.name} results from an ended session")
            return

        self.loading = False
        self.error = None
        for list_name, result in results.items():
            self.lists[list_name] = result.items
            if not result.ok and self.error is None:
                self.error = describe_error(result.error, list_name)
        self.rows = self.build_rows(results[self.primary].items)

    async def retry(self):
        await self.load()

    def build_rows(self, records: List[schemas.BaseSchema]) -> List[schemas.BaseSchema]:
        return list(records)

    def clear(self):
        self.rows = []
        self.lists = {}
        self.loading = False
        self.error = None
        self.search = ""
        self.form.cancel()

    def labels(self, record) -> Dict[str, str]:
        return {}

    def decorate(self, record) -> Dict[str, Any]:
        row = record.model_dump()
        row.update(self.labels(record))
        return row

    def visible_rows(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        term = (self.search if search is None else search).strip().lower()
        rows = [self.decorate(record) for record in self.rows]
        if not term:
            return rows
        return [row for row in rows if any(term in str(row.get(f) or "").lower() for f in self.search_fields)]

    def find(self, record_id: str):
        return find_by_id(self.rows, record_id)

    def delete_path(self, record_id: str) -> str:
        return self.form.form.update_path(record_id)

    def check_delete(self, record):
        pass

    async def delete(self, record_id: str) -> bool:
        record = self.find(record_id)
        if record is not None:
            self.check_delete(record)
        generation = self.session.generation
        try:
            await self.client.delete(self.delete_path(record_id))
        except ApiError as e:
            if self.session.generation != generation:
                return False
            self.error = describe_error(e, self.name)
            self.error.message = f"Failed to delete {self.title.lower()}: {e.message or e.kind}"
            return False
        await self.load()
        return True

    def open_for_edit(self, record_id: str):
        record = self.find(record_id)
        if record is None:
            raise KeyError(record_id)
        return self.form.open_for_edit(record)

    def view(self) -> Dict[str, Any]:
        return {
            "screen": self.name,
            "title": self.title,
            "loading": self.loading,
            "error": self.error.as_dict() if self.error else None,
            "search": self.search,
            "rows": self.visible_rows(),
            "form": form_view(self.form),
        }


class PatientsScreen(ManagementScreen):
    name = "patients"
    title = "Patients"
    primary = "patients"
    search_fields = ("name", "email", "phone")

    def __init__(self, client, loaders):
        super().__init__(client, loaders, PatientEntityForm("/patients", create_path="/patients/patient"))


class DoctorsScreen(ManagementScreen):
    name = "doctors"
    title = "Doctors"
    primary = "doctors"
    references = ("departments",)
    search_fields = ("name", "email", "specialization")

    def __init__(self, client, loaders):
        super().__init__(client, loaders, DoctorEntityForm(loaders.doctors.path))

    def labels(self, record):
        return {"department_name": resolve_name(self.lists.get("departments"), record.department_id)}


class DepartmentsScreen(ManagementScreen):
    name = "departments"
    title = "Departments"
    primary = "departments"
    references = ("doctors", "appointments")
    search_fields = ("name", "description")

    def __init__(self, client, loaders):
        super().__init__(client, loaders, DepartmentEntityForm("/departments"))

    def build_rows(self, records):
        return department_counters(records, self.lists.get("doctors", []), self.lists.get("appointments", []))

    def check_delete(self, record):
        if record.doctor_count or record.appointment_count:
            raise DepartmentInUseError(record.id, record.doctor_count, record.appointment_count)


class AppointmentsScreen(ManagementScreen):
    name = "appointments"
    title = "Appointments"
    primary = "appointments"
    references = ("patients", "doctors", "departments")
    search_fields = ("patient_name", "doctor_name", "reason")

    def __init__(self, client, loaders):
        super().__init__(client, loaders, AppointmentEntityForm("/appointments"))
        # doctors offered on the form; None means every loaded doctor
        self.doctor_options: Optional[List[schemas.Doctor]] = None

    async def load(self):
        self.doctor_options = None
        await super().load()

    def clear(self):
        super().clear()
        self.doctor_options = None

    def labels(self, record):
        return {
            "patient_name": resolve_name(self.lists.get("patients"), record.patient_id),
            "doctor_name": resolve_name(self.lists.get("doctors"), record.doctor_id),
            "department_name": resolve_name(self.lists.get("departments"), record.department_id),
        }

    async def select_department(self, department_id: str):
        """Pick the department on the open form and narrow the doctor choices to it."""
        self.form.change_field("department_id", department_id)
        generation = self.session.generation
        try:
            doctors = await self.loaders.doctors_for_department(department_id, self.offered_doctors())
        except ApiError as e:
            if self.session.generation == generation:
                self.error = describe_error(e, "doctors")
            return
        if self.session.generation == generation:
            self.doctor_options = doctors

    def offered_doctors(self) -> List[schemas.Doctor]:
        if self.doctor_options is not None:
            return self.doctor_options
        return self.lists.get("doctors", [])

    def doctor_choices(self) -> List[Dict[str, Any]]:
        return [{"id": d.id, "name": d.name or "Unknown"} for d in self.offered_doctors()]

    def view(self):
        view = super().view()
        view["doctor_choices"] = self.doctor_choices()
        return view


SCREEN_CLASSES = {
    cls.name: cls for cls in (PatientsScreen, DoctorsScreen, DepartmentsScreen, AppointmentsScreen)
}
