# hms_console/services/api_client.py
from typing import Any, Dict, Optional

import httpx
import structlog

from ..config import Settings, get_settings
from ..exceptions import (
    ApiError, NetworkError, UnauthorizedError, ForbiddenError, ApiValidationError,
    ServerError, UnexpectedError, NotFoundError,
)
from ..session import SessionStore

logger = structlog.get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Error bodies are {message: ...}; fall back to the raw text, then the reason phrase."""
    text = response.text
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return text.strip() or response.reason_phrase or f"HTTP {response.status_code}"


class ApiGatewayClient:
    """Single way out to the records API.

    Attaches the bearer token read from the session store at request time and
    turns every outcome into either a parsed JSON body or an ApiError.
    """

    def __init__(self, session: SessionStore, settings: Optional[Settings] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = settings or get_settings()
        self.session = session
        self.base_url = settings.api_base_url
        timeout = httpx.Timeout(settings.request_timeout)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    async def aclose(self):
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        token = self.session.token
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def request(self, method: str, path: str, json_body: Any = None,
                      params: Optional[Dict[str, Any]] = None) -> Any:
        log = logger.bind(method=method, path=path)
        try:
            response = await self._client.request(
                method, path, json=json_body, params=params, headers=self._headers()
            )
        except httpx.TransportError as e:
            log.warning("api_request_failed", outcome="network", error=str(e))
            raise NetworkError("Network error: Unable to connect to the server.") from e

        status_code = response.status_code
        if response.is_success:
            if status_code == 204:
                log.debug("api_request_ok", status=status_code)
                return None
            try:
                body = response.json()
            except ValueError:
                log.warning("api_request_failed", outcome="unexpected", status=status_code)
                raise UnexpectedError(response.text, status_code=status_code)
            log.debug("api_request_ok", status=status_code)
            return body

        message = _error_message(response)
        error = self._classify(status_code, message)
        log.warning("api_request_failed", outcome=error.kind, status=status_code, message=message)
        if isinstance(error, UnauthorizedError) and (self.session.token or self.session.is_authenticated):
            self.session.logout(reason=f"{method} {path} answered 401")
        raise error

    @staticmethod
    def _classify(status_code: int, message: str) -> ApiError:
        if status_code == 401:
            return UnauthorizedError(message, status_code=status_code)
        if status_code == 403:
            return ForbiddenError(message, status_code=status_code)
        if status_code == 400:
            return ApiValidationError(message, status_code=status_code)
        if status_code >= 500:
            return ServerError(message, status_code=status_code)
        if status_code == 404:
            return NotFoundError(message, status_code=status_code)
        return UnexpectedError(message, status_code=status_code)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, payload: Any = None) -> Any:
        return await self.request("POST", path, json_body=payload)

    async def put(self, path: str, payload: Any = None) -> Any:
        return await self.request("PUT", path, json_body=payload)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
