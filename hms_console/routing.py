# hms_console/routing.py
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .schemas import Session, UserRole

LOGIN_PATH = "/"
DASHBOARD_PATH = "/dashboard"
DEFAULT_TAB = "dashboard"

TABS_BY_ROLE: Dict[UserRole, Tuple[str, ...]] = {
    UserRole.admin: ("dashboard", "patients", "doctors", "departments", "appointments"),
    UserRole.doctor: ("dashboard", "patients", "appointments"),
}


@dataclass(frozen=True)
class Route:
    page: str
    path: str
    tab: Optional[str] = None


class ViewRouter:
    """Two pages, login and dashboard; inside the dashboard one selected tab."""

    def tabs_for(self, role: Optional[UserRole]) -> Tuple[str, ...]:
        if role is None:
            return ()
        return TABS_BY_ROLE.get(role, (DEFAULT_TAB,))

    def resolve(self, session: Session, path: str = DASHBOARD_PATH, tab: Optional[str] = None) -> Route:
        if not session.is_authenticated:
            return Route(page="login", path=LOGIN_PATH)
        # "/" and "/dashboard" both land on the dashboard once logged in
        allowed = self.tabs_for(session.role)
        selected = tab if tab in allowed else DEFAULT_TAB
        return Route(page="dashboard", path=DASHBOARD_PATH, tab=selected)
