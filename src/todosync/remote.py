"""
TODOSYNC - Remote Store Client
==============================
Contract the core depends on, plus the HTTP implementation that speaks
to the todo backend (`/api/todos/...`).

Failures are opaque to callers: everything that goes wrong on the wire
is raised as RemoteStoreError.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .schema import Todo

logger = logging.getLogger("todosync.remote")

DEFAULT_BASE_URL = "http://127.0.0.1:3001"
DEFAULT_TIMEOUT_SECONDS = 5.0

_ROWS = TypeAdapter(List[Any])


class RemoteStoreError(Exception):
    """Remote call failed (connectivity, non-success status, bad payload)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class Welcome(BaseModel):
    text: str


class RemoteStore(Protocol):
    """Operations the dispatcher may invoke. Acks carry no payload."""

    async def welcome(self) -> str: ...

    async def list_active(self) -> List[Todo]: ...

    async def list_archived(self) -> List[Todo]: ...

    async def create(self, title: str) -> Todo: ...

    async def toggle_complete(self, todo_id: int) -> None: ...

    async def rename(self, todo_id: int, new_title: str) -> None: ...

    async def delete(self, todo_id: int) -> None: ...

    async def increase_priority(self, todo_id: int) -> None: ...

    async def decrease_priority(self, todo_id: int) -> None: ...

    async def clear_all(self) -> None: ...

    async def archive_completed(self) -> None: ...


class HttpRemoteStore:
    """Async HTTP client for the todo backend"""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpRemoteStore":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    # ========================================
    # TRANSPORT
    # ========================================

    async def _request(
        self,
        method: str,
        url: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send one request; raise RemoteStoreError on any failure"""
        try:
            response = await self._client.request(method, url, json=json_body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise RemoteStoreError(f"{method} {url} returned HTTP {status}", status_code=status) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {url} failed: {e}") from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    async def _post(self, url: str, json_body: Dict[str, Any]) -> None:
        await self._request("POST", url, json_body)

    @staticmethod
    def _parse(adapter: TypeAdapter, response: httpx.Response) -> Any:
        try:
            return adapter.validate_json(response.text)
        except ValidationError as e:
            raise RemoteStoreError(f"Malformed response from {response.request.url}: {e}") from e

    def _parse_todos(self, response: httpx.Response) -> List[Todo]:
        """Parse a todo list, skipping rows that do not form a Todo"""
        todos = []
        for row in self._parse(_ROWS, response):
            try:
                todos.append(Todo.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed todo from {response.request.url}: {row!r} ({e})")
        return todos

    # ========================================
    # OPERATIONS
    # ========================================

    async def welcome(self) -> str:
        response = await self._request("GET", "/")
        return self._parse(TypeAdapter(Welcome), response).text

    async def list_active(self) -> List[Todo]:
        response = await self._request("GET", "/api/todos")
        return self._parse_todos(response)

    async def list_archived(self) -> List[Todo]:
        response = await self._request("GET", "/api/todos/complete")
        return self._parse_todos(response)

    async def create(self, title: str) -> Todo:
        response = await self._request("POST", "/api/todos", {"title": title})
        return self._parse(TypeAdapter(Todo), response)

    async def toggle_complete(self, todo_id: int) -> None:
        await self._post("/api/todos/complete", {"id": todo_id})

    async def rename(self, todo_id: int, new_title: str) -> None:
        await self._post("/api/todos/rename", {"id": todo_id, "new_title": new_title})

    async def delete(self, todo_id: int) -> None:
        await self._post("/api/todos/delete", {"id": todo_id})

    async def increase_priority(self, todo_id: int) -> None:
        await self._post("/api/todos/increase_priority", {"id": todo_id})

    async def decrease_priority(self, todo_id: int) -> None:
        await self._post("/api/todos/decrease_priority", {"id": todo_id})

    async def clear_all(self) -> None:
        await self._post("/api/todos/clear", {})

    async def archive_completed(self) -> None:
        await self._post("/api/todos/archive_completed", {})
