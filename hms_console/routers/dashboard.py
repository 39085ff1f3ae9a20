# hms_console/routers/dashboard.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import RedirectResponse

from ..console import Console, get_console
from ..exceptions import DepartmentInUseError, FormStateError
from ..routing import DASHBOARD_PATH, DEFAULT_TAB, LOGIN_PATH
from ..services.screens import ManagementScreen, AppointmentsScreen

import logging

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix=DASHBOARD_PATH,
    tags=["Dashboard"],
    responses={404: {"description": "Not found"}},
)


def _session_ended():
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"message": "Your session has ended. Please log in again.", "redirect": LOGIN_PATH},
    )


def _page(console: Console, tab: str) -> Dict[str, Any]:
    """Whole dashboard page for the selected tab; 401 if the session ended meanwhile."""
    if not console.session.is_authenticated:
        raise _session_ended()
    session = console.session.current()
    return {
        "session": session.public(),
        "tabs": list(console.router.tabs_for(session.role)),
        "tab": tab,
        "view": console.screen(tab).view(),
    }


def _mounted(console: Console, tab: str) -> ManagementScreen:
    """A management screen the current role may use."""
    if not console.session.is_authenticated:
        raise _session_ended()
    if tab not in console.router.tabs_for(console.session.current().role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this screen.")
    screen = console.screen(tab)
    if not isinstance(screen, ManagementScreen):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="This screen has no records.")
    return screen


@router.get("")
async def dashboard(tab: Optional[str] = None, search: Optional[str] = None,
                    console: Console = Depends(get_console)):
    """
    Mount the selected tab (falling back to the overview) and load its lists.
    """
    route = console.router.resolve(console.session.current(), DASHBOARD_PATH, tab)
    if route.page == "login":
        return RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    screen = console.screen(route.tab)
    if search is not None and isinstance(screen, ManagementScreen):
        screen.search = search
    await screen.load()
    return _page(console, route.tab)

@router.post("/{tab}/retry")
async def retry(tab: str, console: Console = Depends(get_console)):
    if tab == DEFAULT_TAB and console.session.is_authenticated:
        screen = console.screen(tab)
    else:
        screen = _mounted(console, tab)
    await screen.retry()
    return _page(console, tab)

@router.post("/{tab}/form")
async def open_form(tab: str, payload: Optional[Dict[str, Any]] = Body(None),
                    console: Console = Depends(get_console)):
    """
    Open the form empty for a new record, or pre-filled when an id is given.
    """
    screen = _mounted(console, tab)
    record_id = (payload or {}).get("id")
    if record_id:
        try:
            screen.open_for_edit(str(record_id))
        except KeyError:
            raise HTTPException(status_code=404, detail="The record with the specified ID is not loaded.")
    else:
        screen.form.open_for_create()
    return _page(console, tab)

@router.patch("/{tab}/form")
async def change_fields(tab: str, payload: Dict[str, Any] = Body(...),
                        console: Console = Depends(get_console)):
    screen = _mounted(console, tab)
    try:
        for name, value in payload.items():
            if isinstance(screen, AppointmentsScreen) and name == "department_id":
                await screen.select_department(value)
            else:
                screen.form.change_field(name, value)
    except FormStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _page(console, tab)

@router.post("/{tab}/form/submit")
async def submit_form(tab: str, console: Console = Depends(get_console)):
    screen = _mounted(console, tab)
    try:
        saved = await screen.form.submit()
    except FormStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    page = _page(console, tab)
    page["saved"] = saved
    return page

@router.post("/{tab}/form/reset")
async def reset_form(tab: str, console: Console = Depends(get_console)):
    screen = _mounted(console, tab)
    try:
        screen.form.reset()
    except FormStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _page(console, tab)

@router.delete("/{tab}/form")
async def cancel_form(tab: str, console: Console = Depends(get_console)):
    screen = _mounted(console, tab)
    screen.form.cancel()
    return _page(console, tab)

@router.delete("/{tab}/records/{record_id}")
async def delete_record(tab: str, record_id: str, console: Console = Depends(get_console)):
    screen = _mounted(console, tab)
    try:
        deleted = await screen.delete(record_id)
    except DepartmentInUseError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    page = _page(console, tab)
    page["deleted"] = deleted
    return page
