"""
TODOSYNC - Local State Store
============================
The single in-memory source of truth for the active todos.
Pure storage plus the ordered view; no network or validation logic.

Snapshots are a convenience for offline CLI runs, not a durable store.
"""

import json
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from .ordering import order_todos
from .schema import Snapshot, Todo

logger = logging.getLogger("todosync.store")

Listener = Callable[[List[Todo]], None]


class TodoStore:
    """
    Active todo collection keyed by id.

    Storage is order-independent; `get_all()` derives the display order
    on every call. Subscribers are notified after each mutation.
    """

    def __init__(self, todos: Iterable[Todo] = ()):
        self._todos: Dict[int, Todo] = {todo.id: todo for todo in todos}
        self._listeners: List[Listener] = []

    # ========================================
    # READS
    # ========================================

    def get_all(self) -> List[Todo]:
        return order_todos(self._todos.values())

    def get(self, todo_id: int) -> Optional[Todo]:
        return self._todos.get(todo_id)

    def __len__(self) -> int:
        return len(self._todos)

    def __contains__(self, todo_id: object) -> bool:
        return todo_id in self._todos

    # ========================================
    # MUTATIONS
    # ========================================

    def upsert(self, todo: Todo) -> None:
        """Insert or replace by id"""
        self._todos[todo.id] = todo
        self._notify()

    def remove(self, todo_id: int) -> Optional[Todo]:
        """Remove by id; returns the removed todo, None if it was absent"""
        removed = self._todos.pop(todo_id, None)
        if removed is not None:
            self._notify()
        return removed

    def replace_all(self, todos: Iterable[Todo]) -> None:
        """Atomically swap the whole active set"""
        self._todos = {todo.id: todo for todo in todos}
        self._notify()

    # ========================================
    # SUBSCRIPTIONS
    # ========================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.get_all()
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                logger.warning(f"Store listener {listener!r} failed: {e}")

    # ========================================
    # SNAPSHOTS
    # ========================================

    def save_snapshot(self, path: Path) -> None:
        """Write the active set to a JSON file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        snapshot = Snapshot(todos=self.get_all())
        with open(path, 'w') as f:
            json.dump(snapshot.model_dump(mode='json'), f, indent=2)

        logger.debug(f"💾 Saved snapshot: {path} ({len(snapshot.todos)} todos)")

    def load_snapshot(self, path: Path) -> bool:
        """Replace the active set from a snapshot file; False if none usable"""
        path = Path(path)
        if not path.exists():
            logger.debug(f"No snapshot at {path}")
            return False

        try:
            with open(path, 'r') as f:
                snapshot = Snapshot(**json.load(f))
        except (OSError, TypeError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable snapshot {path}: {e}")
            return False

        self.replace_all(snapshot.todos)
        logger.debug(f"📂 Loaded snapshot: {path} ({len(snapshot.todos)} todos)")
        return True
