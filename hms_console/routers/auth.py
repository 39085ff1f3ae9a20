# hms_console/routers/auth.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from .. import schemas
from ..console import Console, get_console
from ..exceptions import AuthError, InactiveAccount, AuthNetworkError
from ..routing import DASHBOARD_PATH, LOGIN_PATH
from ..services import auth
from ..services.forms import validation_errors

import logging

logger = logging.getLogger(__name__)


router = APIRouter(
    tags=["Authentication"]
)

@router.get("/")
async def login_page(console: Console = Depends(get_console)):
    """
    The login page, or straight to the dashboard when a session is already held.
    """
    if console.session.is_authenticated:
        return RedirectResponse(url=DASHBOARD_PATH, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return {"page": "login", "roles": [role.value for role in schemas.UserRole]}

@router.post("/login")
async def login(payload: Dict[str, Any] = Body(...), console: Console = Depends(get_console)):
    try:
        credentials = schemas.LoginRequest.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"errors": validation_errors(e)})

    try:
        session = await auth.login(console.client, credentials)
    except AuthError as e:
        if isinstance(e, AuthNetworkError):
            code = status.HTTP_503_SERVICE_UNAVAILABLE
        elif isinstance(e, InactiveAccount):
            code = status.HTTP_403_FORBIDDEN
        else:
            code = status.HTTP_401_UNAUTHORIZED
        raise HTTPException(status_code=code, detail={"errors": {"submit": e.message}})

    logger.info(f"User '{credentials.email}' successfully authenticated as {session.role.value}.")
    return {"session": session.public(), "redirect": DASHBOARD_PATH}

@router.post("/logout")
async def logout(console: Console = Depends(get_console)):
    auth.logout(console.client)
    return {"session": console.session.current().public(), "redirect": LOGIN_PATH}
