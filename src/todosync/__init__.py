"""
TODOSYNC - Offline-tolerant Todo Client
=======================================

Keeps a local list of todos approximately consistent with a remote
store. Local changes apply immediately, are sent to the server, and are
confirmed or rolled back when the server answers.

Usage:
    from todosync import TodoDispatcher, TodoStore, HttpRemoteStore

    async with HttpRemoteStore("http://127.0.0.1:3001") as remote:
        dispatcher = TodoDispatcher(TodoStore(), remote)
        await dispatcher.fetch_active()
        await dispatcher.add("buy milk")
        print(dispatcher.store.get_all())
"""

from .schema import (
    Todo,
    Snapshot,
    CommandOutcome,
    ProvisionalIdGenerator,
    validate_title,
    MAX_TITLE_LENGTH,
    MIN_PRIORITY,
    MAX_PRIORITY,
    FALLBACK_PRIORITY,
)
from .ordering import order_todos
from .store import TodoStore
from .remote import RemoteStore, RemoteStoreError, HttpRemoteStore
from .reconcile import FailurePolicy, OptimisticCommand, Reconciler
from .dispatcher import TodoDispatcher
from .config import Settings

__version__ = "1.0.0"
__all__ = [
    "TodoDispatcher",
    "TodoStore",
    "Todo",
    "Snapshot",
    "CommandOutcome",
    "ProvisionalIdGenerator",
    "validate_title",
    "order_todos",
    "RemoteStore",
    "RemoteStoreError",
    "HttpRemoteStore",
    "FailurePolicy",
    "OptimisticCommand",
    "Reconciler",
    "Settings",
    "MAX_TITLE_LENGTH",
    "MIN_PRIORITY",
    "MAX_PRIORITY",
    "FALLBACK_PRIORITY",
]
