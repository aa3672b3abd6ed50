"""Data-access contract and its HTTP implementation over the host REST API."""

import logging
import os
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

ENTITY_PATHS = {
    "task": "/tasks",
    "course": "/courses",
    "reading": "/reading",
    "goal": "/goals",
}


class DataAccessError(RuntimeError):
    """A data-access call failed (network, HTTP status, bad payload)."""


class DataAccessTimeout(DataAccessError):
    pass


class DataStore(Protocol):
    async def list(self, entity: str, filters: dict | None = None) -> list[dict]: ...

    async def create(self, entity: str, fields: dict) -> dict: ...

    async def update(self, entity: str, record_id: Any, fields: dict) -> dict: ...

    async def delete(self, entity: str, record_id: Any) -> None: ...

    async def update_lesson(self, course_id: Any, lesson_number: int, fields: dict) -> dict: ...

    async def dashboard_stats(self) -> dict: ...


def store_timeout() -> float:
    return float(os.getenv("DATA_API_TIMEOUT_SECONDS", "10"))


def _path(entity: str) -> str:
    try:
        return ENTITY_PATHS[entity]
    except KeyError:
        raise DataAccessError(f"Unknown entity {entity!r}") from None


class HttpDataStore:
    """DataStore backed by the productivity app's JSON API."""

    def __init__(self, base_url: str, *, token: str | None = None, timeout: float | None = None,
                 transport: httpx.AsyncBaseTransport | None = None):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout if timeout is not None else store_timeout(),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning("Data API %s %s timed out", method, path)
            raise DataAccessTimeout(f"{method} {path} timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error("Data API %s %s returned HTTP %d", method, path, e.response.status_code)
            raise DataAccessError(f"{method} {path} failed with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("Data API %s %s failed: %s", method, path, e)
            raise DataAccessError(f"{method} {path} failed: {e}") from e

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise DataAccessError(f"{method} {path} returned invalid JSON") from e

    async def list(self, entity: str, filters: dict | None = None) -> list[dict]:
        params = {k: v for k, v in (filters or {}).items() if v is not None}
        data = await self._request("GET", _path(entity), params=params)
        if not isinstance(data, list):
            raise DataAccessError(f"Expected a list from {_path(entity)}")
        return data

    async def create(self, entity: str, fields: dict) -> dict:
        return await self._request("POST", _path(entity), json=fields)

    async def update(self, entity: str, record_id: Any, fields: dict) -> dict:
        return await self._request("PATCH", f"{_path(entity)}/{record_id}", json=fields)

    async def delete(self, entity: str, record_id: Any) -> None:
        await self._request("DELETE", f"{_path(entity)}/{record_id}")

    async def update_lesson(self, course_id: Any, lesson_number: int, fields: dict) -> dict:
        return await self._request("PATCH", f"/courses/{course_id}/lessons/{lesson_number}", json=fields)

    async def dashboard_stats(self) -> dict:
        data = await self._request("GET", "/dashboard/stats")
        return data or {}


def build_store() -> DataStore:
    """HTTP store when DATA_API_BASE_URL is set, otherwise the in-memory one."""
    base_url = os.getenv("DATA_API_BASE_URL")
    if base_url:
        logger.info("Using data API at %s", base_url)
        return HttpDataStore(base_url, token=os.getenv("DATA_API_TOKEN"))
    from .memory import InMemoryDataStore
    logger.info("DATA_API_BASE_URL not set, using in-memory data store")
    return InMemoryDataStore()
