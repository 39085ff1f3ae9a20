# hms_console/console.py
import logging
from typing import Dict, Optional, Union

import httpx
from fastapi import Request

from .config import Settings, get_settings
from .routing import ViewRouter, DEFAULT_TAB
from .services.api_client import ApiGatewayClient
from .services.dashboard import DashboardOverview
from .services.loaders import Loaders
from .services.screens import ManagementScreen, SCREEN_CLASSES
from .session import LocalStorage, SessionStore

logger = logging.getLogger(__name__)

Screen = Union[DashboardOverview, ManagementScreen]


class Console:
    """Everything one console process needs, wired together once."""

    def __init__(self, settings: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 storage: Optional[LocalStorage] = None):
        self.settings = settings or get_settings()
        self.session = SessionStore(storage or LocalStorage(self.settings.session_file))
        self.client = ApiGatewayClient(self.session, self.settings, transport=transport)
        self.loaders = Loaders(self.client, doctors_path=self.settings.doctors_path)
        self.router = ViewRouter()
        self.screens: Dict[str, Screen] = {DEFAULT_TAB: DashboardOverview(self.client, self.loaders)}
        for name, screen_class in SCREEN_CLASSES.items():
            self.screens[name] = screen_class(self.client, self.loaders)
        self.session.subscribe(self.clear_screens)

    def clear_screens(self):
        for screen in self.screens.values():
            screen.clear()
        logger.debug("Cleared cached lists on every screen")

    def screen(self, tab: str) -> Screen:
        return self.screens[tab]

    async def aclose(self):
        await self.client.aclose()


# Dependency to get the process-wide console
def get_console(request: Request) -> Console:
    console = getattr(request.app.state, "console", None)
    if console is None:
        console = Console()
        request.app.state.console = console
    return console
