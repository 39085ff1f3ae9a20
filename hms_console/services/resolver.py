# hms_console/services/resolver.py
from typing import Any, Iterable, List, Optional

from .. import schemas

UNKNOWN = "Unknown"


def _value(record: Any, attr: str) -> Any:
    if isinstance(record, dict):
        return record.get(attr)
    return getattr(record, attr, None)


def _record_id(record: Any) -> Optional[str]:
    if isinstance(record, dict):
        value = record.get("_id", record.get("id"))
    else:
        value = getattr(record, "id", None)
    return None if value is None else str(value)


def find_by_id(collection: Optional[Iterable[Any]], record_id: Any) -> Optional[Any]:
    if record_id is None or record_id == "" or not collection:
        return None
    wanted = str(record_id)
    for record in collection:
        if _record_id(record) == wanted:
            return record
    return None


def resolve_name(collection: Optional[Iterable[Any]], record_id: Any, attr: str = "name") -> str:
    """Label of the record with ``record_id``, or "Unknown".

    Works on whatever is already loaded and never triggers a fetch.
    """
    record = find_by_id(collection, record_id)
    if record is None:
        return UNKNOWN
    label = _value(record, attr)
    return str(label) if label else UNKNOWN


def department_counters(departments: List[schemas.Department], doctors: List[schemas.Doctor],
                        appointments: List[schemas.Appointment]) -> List[schemas.Department]:
    """Departments with doctor_count/appointment_count filled in from the loaded lists."""
    enriched = []
    for department in departments:
        doctor_count = sum(1 for d in doctors if department.id and d.department_id == department.id)
        appointment_count = sum(1 for a in appointments if department.id and a.department_id == department.id)
        enriched.append(department.model_copy(update={
            "doctor_count": doctor_count,
            "appointment_count": appointment_count,
        }))
    return enriched
