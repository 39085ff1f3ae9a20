# hms_console/services/dashboard.py
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from .. import schemas
from ..schemas import UserRole
from .api_client import ApiGatewayClient
from .loaders import Loaders, load_concurrently
from .resolver import resolve_name
from .screens import ScreenError, describe_error

logger = logging.getLogger(__name__)

RECENT_APPOINTMENTS = 5


def compute_stats(patients: List[schemas.Patient], doctors: List[schemas.Doctor],
                  departments: List[schemas.Department], appointments: List[schemas.Appointment],
                  today: Optional[date] = None) -> schemas.DashboardStats:
    today_key = (today or date.today()).isoformat()
    latest = sorted(
        (a for a in appointments if a.day),
        key=lambda a: a.date,
        reverse=True,
    )[:RECENT_APPOINTMENTS]
    recent = [
        schemas.RecentAppointment(
            id=a.id,
            date=a.day,
            time=a.time,
            status=a.status,
            patient_name=resolve_name(patients, a.patient_id),
            department_name=resolve_name(departments, a.department_id),
        )
        for a in latest
    ]
    return schemas.DashboardStats(
        total_patients=len(patients),
        total_doctors=len(doctors),
        total_appointments=len(appointments),
        total_departments=len(departments),
        today_appointments=sum(1 for a in appointments if a.day == today_key),
        active_doctors=sum(1 for d in doctors if d.is_active),
        recent_appointments=recent,
    )


class DashboardOverview:
    """Default tab: headline counts and the latest appointments."""

    name = "dashboard"
    title = "Dashboard"

    def __init__(self, client: ApiGatewayClient, loaders: Loaders):
        self.client = client
        self.loaders = loaders
        self.stats = schemas.DashboardStats()
        self.loading = False
        self.error: Optional[ScreenError] = None

    def collections(self):
        role = self.client.session.current().role
        if role is UserRole.doctor:
            return ("patients", "appointments", "departments")
        return ("patients", "doctors", "departments", "appointments")

    async def load(self):
        generation = self.client.session.generation
        self.loading = True
        results = await load_concurrently(self.loaders.by_name(*self.collections()))
        if self.client.session.generation != generation:
            logger.debug("Discarding dashboard results from an ended session")
            return
        self.loading = False
        self.error = None
        for list_name, result in results.items():
            if not result.ok:
                self.error = describe_error(result.error, list_name)
                break

        def items(list_name):
            result = results.get(list_name)
            return result.items if result else []

        self.stats = compute_stats(items("patients"), items("doctors"), items("departments"), items("appointments"))

    async def retry(self):
        await self.load()

    def clear(self):
        self.stats = schemas.DashboardStats()
        self.loading = False
        self.error = None

    def view(self) -> Dict[str, Any]:
        return {
            "screen": self.name,
            "title": self.title,
            "loading": self.loading,
            "error": self.error.as_dict() if self.error else None,
            "stats": self.stats.model_dump(),
        }
