# hms_console/services/auth.py
import logging

from pydantic import ValidationError

from .. import schemas
from ..exceptions import ApiError, NetworkError, AuthNetworkError, InvalidCredentials, InactiveAccount
from ..schemas import UserRole
from .api_client import ApiGatewayClient

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"


async def login(client: ApiGatewayClient, credentials: schemas.LoginRequest) -> schemas.Session:
    """Authenticate against the records API and persist the session on success.

    Nothing is written to the session store unless every check passes.
    """
    payload = {
        "email": credentials.email,
        "password": credentials.password,
        "role": credentials.role.value,
    }
    try:
        body = await client.post(LOGIN_PATH, payload)
    except NetworkError as e:
        logger.warning(f"Login for {credentials.email} failed: network error")
        raise AuthNetworkError(
            "Login failed due to a network error. Please check your connection and try again."
        ) from e
    except ApiError as e:
        logger.warning(f"Failed login attempt for {credentials.email}: {e.message}")
        raise InvalidCredentials(e.message or "Login failed. Please try again.") from e

    try:
        result = schemas.LoginResponse.model_validate(body if isinstance(body, dict) else {})
    except ValidationError as e:
        raise InvalidCredentials(f"Invalid server response: {body}") from e

    if not result.success or not result.token:
        logger.warning(f"Failed login attempt for {credentials.email}: {result.message}")
        raise InvalidCredentials(result.message or "Login failed. Please try again.")

    # Prefer the role the server reports over the one that was asked for
    role_name = (result.role or credentials.role.value).lower()
    try:
        role = UserRole(role_name)
    except ValueError:
        raise InvalidCredentials(f"Unsupported role returned by server: {result.role}")

    if role is UserRole.doctor:
        if result.user is None:
            logger.warning("Login response for a doctor carried no user record; account status not checked")
        elif str(result.user.get("status") or "").lower() != "active":
            logger.info(f"Rejected login for inactive doctor {credentials.email}")
            raise InactiveAccount("You are not an active doctor. Please contact admin.")

    return client.session.establish(result.token, credentials.email, role)


def logout(client: ApiGatewayClient):
    client.session.logout()
