# tests/conftest.py
import httpx
import pytest

from hms_console.config import Settings
from hms_console.console import Console
from hms_console.schemas import UserRole
from hms_console.services.api_client import ApiGatewayClient
from hms_console.services.loaders import Loaders
from hms_console.session import LocalStorage, SessionStore

API_ROOT = "/api"


class FakeRecordsApi:
    """In-process stand-in for the records API, plugged in as an httpx transport."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, status_code=200, json=None, text=None, handler=None):
        self.routes[(method, API_ROOT + path)] = (status_code, json, text, handler)

    async def _handle(self, request: httpx.Request):
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        status_code, body, text, handler = route
        if handler is not None:
            return await handler(request)
        if text is not None:
            return httpx.Response(status_code, text=text)
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    def transport(self):
        return httpx.MockTransport(self._handle)

    def writes(self):
        return [r for r in self.requests if r.method != "GET"]

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == API_ROOT + path]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        HMS_API_BASE_URL="http://records.test/api",
        HMS_SESSION_FILE=str(tmp_path / "session.json"),
        HMS_ENVIRONMENT="testing",
    )


@pytest.fixture
def api():
    return FakeRecordsApi()


@pytest.fixture
def storage(settings):
    return LocalStorage(settings.session_file)


@pytest.fixture
def session_store(storage):
    return SessionStore(storage)


@pytest.fixture
def client(session_store, settings, api):
    return ApiGatewayClient(session_store, settings, transport=api.transport())


@pytest.fixture
def loaders(client):
    return Loaders(client)


@pytest.fixture
def admin_session(session_store):
    return session_store.establish("t1", "admin@x.com", UserRole.admin)


@pytest.fixture
def doctor_session(session_store):
    return session_store.establish("t2", "doc@x.com", UserRole.doctor)


@pytest.fixture
def console(settings, api):
    return Console(settings, transport=api.transport())


def seed_records(api):
    """A small, consistent set of records across the four collections."""
    api.add("GET", "/departments", json={"data": [
        {"_id": "d1", "dept": "Cardiology", "description": "Heart and cardiovascular system"},
        {"_id": "d2", "dept": "Neurology", "description": "Brain and nervous system"},
    ]})
    api.add("GET", "/doctors", json=[
        {"_id": "doc1", "name": "Dr. John Smith", "email": "john@x.com", "phno": "5550101",
         "spec": "Cardiology", "department": "d1", "exp": "10 years", "qual": "MD", "status": "Active"},
        {"_id": "doc2", "name": "Dr. Sarah Johnson", "email": "sarah@x.com", "phno": "5550102",
         "spec": "Neurology", "department": {"_id": "d2", "dept": "Neurology"}, "exp": "8 years",
         "qual": "MD, PhD", "status": "Inactive"},
    ])
    api.add("GET", "/patients", json=[
        {"_id": "p1", "name": "Alice Wilson", "email": "alice@x.com", "phno": "+1-555-1001", "age": 35,
         "gender": "female", "address": "123 Main St", "bg": "A+", "emerno": "+1-555-1002",
         "medical_history": "Hypertension"},
        {"_id": "p2", "name": "Bob Davis", "email": "bob@x.com", "phno": "+1-555-1003", "age": 42,
         "gender": "male", "address": "456 Oak Ave", "bg": "B+", "emerno": "+1-555-1004"},
    ])
    api.add("GET", "/appointments", json={"data": [
        {"_id": "a1", "patient": {"_id": "p1", "name": "Alice Wilson"}, "doctor": {"_id": "doc1"},
         "dept": {"_id": "d1", "dept": "Cardiology"}, "date": "2024-08-26T00:00:00.000Z", "time": "10:00",
         "status": "Scheduled", "rsv": "Regular checkup", "notes": "Chest pain"},
        {"_id": "a2", "patient": "p2", "doctor": None, "dept": "d1", "date": "2024-08-27",
         "time": "14:30", "status": "Completed", "rsv": "Follow-up consultation", "notes": ""},
    ]})


@pytest.fixture
def seeded_api(api):
    seed_records(api)
    return api
