"""Shared test fixtures."""

from __future__ import annotations

import asyncio

import pytest

from todosync.dispatcher import TodoDispatcher
from todosync.ordering import order_todos
from todosync.remote import RemoteStoreError
from todosync.schema import MAX_PRIORITY, MIN_PRIORITY, Todo
from todosync.store import TodoStore


class FakeRemoteStore:
    """In-memory backend with failure injection and a gate to hold calls pending."""

    def __init__(self, default_priority: int = 1):
        self.active: dict[int, Todo] = {}
        self.archived: list[Todo] = []
        self.calls: list[tuple] = []
        self.failing: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.default_priority = default_priority
        self._next_id = 1

    def seed(self, title: str, priority: int = 1, completed: bool = False) -> Todo:
        todo = Todo(id=self._next_id, title=title, priority=priority, completed=completed)
        self._next_id += 1
        self.active[todo.id] = todo
        return todo

    def fail(self, *operations: str) -> None:
        self.failing.update(operations)

    async def _call(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if self.gate is not None:
            await self.gate.wait()
        if operation in self.failing or "*" in self.failing:
            raise RemoteStoreError(f"{operation} failed", status_code=500)

    def _update(self, todo_id: int, **fields) -> None:
        todo = self.active.get(todo_id)
        if todo is not None:
            self.active[todo_id] = todo.model_copy(update=fields)

    async def welcome(self) -> str:
        await self._call("welcome")
        return "Welcome to Rust API"

    async def list_active(self) -> list[Todo]:
        await self._call("list_active")
        return order_todos(self.active.values())

    async def list_archived(self) -> list[Todo]:
        await self._call("list_archived")
        return list(self.archived)

    async def create(self, title: str) -> Todo:
        await self._call("create", title)
        return self.seed(title, priority=self.default_priority)

    async def toggle_complete(self, todo_id: int) -> None:
        await self._call("toggle_complete", todo_id)
        todo = self.active.get(todo_id)
        if todo is not None:
            self._update(todo_id, completed=not todo.completed)

    async def rename(self, todo_id: int, new_title: str) -> None:
        await self._call("rename", todo_id, new_title)
        self._update(todo_id, title=new_title)

    async def delete(self, todo_id: int) -> None:
        await self._call("delete", todo_id)
        self.active.pop(todo_id, None)

    async def increase_priority(self, todo_id: int) -> None:
        await self._call("increase_priority", todo_id)
        todo = self.active.get(todo_id)
        if todo is not None:
            self._update(todo_id, priority=min(todo.priority + 1, MAX_PRIORITY))

    async def decrease_priority(self, todo_id: int) -> None:
        await self._call("decrease_priority", todo_id)
        todo = self.active.get(todo_id)
        if todo is not None:
            self._update(todo_id, priority=max(todo.priority - 1, MIN_PRIORITY))

    async def clear_all(self) -> None:
        await self._call("clear_all")
        self.active.clear()

    async def archive_completed(self) -> None:
        await self._call("archive_completed")
        for todo_id, todo in list(self.active.items()):
            if todo.completed:
                self.archived.append(self.active.pop(todo_id))

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture()
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture()
def store() -> TodoStore:
    return TodoStore()


@pytest.fixture()
def dispatcher(store: TodoStore, remote: FakeRemoteStore) -> TodoDispatcher:
    return TodoDispatcher(store, remote)
