# hms_console/services/loaders.py
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import ValidationError

from .. import schemas
from ..exceptions import ApiError
from .api_client import ApiGatewayClient

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=schemas.BaseSchema)


def normalize_collection(payload: Any) -> List[Dict[str, Any]]:
    """Flatten a list response into its rows.

    The records API answers either with a bare array or with an envelope
    ``{"data": [...]}``. Anything else, ``None`` included, is an empty list.
    Elements that are not JSON objects are dropped.
    """
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        rows = payload["data"]
    else:
        if payload is not None:
            logger.warning(f"Unrecognised list response of type {type(payload).__name__}; treating as empty")
        return []

    records = [row for row in rows if isinstance(row, dict)]
    if len(records) != len(rows):
        logger.warning(f"Dropped {len(rows) - len(records)} non-object row(s) from list response")
    return records


class EntityListLoader(Generic[T]):
    """Fetches one collection and parses it into records, in server order."""

    def __init__(self, client: ApiGatewayClient, path: str, model: Type[T]):
        self.client = client
        self.path = path
        self.model = model

    def parse(self, payload: Any) -> List[T]:
        records = []
        for row in normalize_collection(payload):
            try:
                records.append(self.model.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {self.model.__name__} row {row.get('_id')}: {e}")
        return records

    async def load(self, params: Optional[Dict[str, Any]] = None) -> List[T]:
        payload = await self.client.get(self.path, params=params)
        return self.parse(payload)


@dataclass
class LoadResult:
    items: List[Any] = field(default_factory=list)
    error: Optional[ApiError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def load_concurrently(loaders: Dict[str, EntityListLoader]) -> Dict[str, LoadResult]:
    """Run every loader at once; one failing never holds back the others."""
    names = list(loaders)
    outcomes = await asyncio.gather(
        *(loaders[name].load() for name in names), return_exceptions=True
    )
    results = {}
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, ApiError):
            logger.warning(f"Loading {name} failed: {outcome.kind}: {outcome}")
            results[name] = LoadResult(error=outcome)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results[name] = LoadResult(items=outcome)
    return results


class Loaders:
    """The four list loaders, built once per gateway client."""

    def __init__(self, client: ApiGatewayClient, doctors_path: str = "/doctors"):
        self.client = client
        self.patients = EntityListLoader(client, "/patients", schemas.Patient)
        self.doctors = EntityListLoader(client, doctors_path, schemas.Doctor)
        self.departments = EntityListLoader(client, "/departments", schemas.Department)
        self.appointments = EntityListLoader(client, "/appointments", schemas.Appointment)

    def by_name(self, *names: str) -> Dict[str, EntityListLoader]:
        return {name: getattr(self, name) for name in names}

    async def doctors_for_department(self, department_id: str,
                                     previous: List[schemas.Doctor]) -> List[schemas.Doctor]:
        """Doctors of one department, as filtered by the server.

        An empty answer keeps the doctors that were already on screen.
        """
        if not department_id:
            return await self.doctors.load()
        doctors = await self.doctors.load(params={"departmentId": department_id})
        if not doctors:
            logger.info(f"No doctors found for department {department_id}; keeping current list")
            return previous
        return doctors
