"""
TODOSYNC - Command Dispatcher
=============================
One handler per user intent. Each follows the same template:

    validate -> optimistic apply -> remote call -> reconcile

Handlers never raise on bad input or remote failure; they return a
CommandOutcome. Per-item handlers are serialized per id so two pending
commands on the same todo reconcile in the order they were issued.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional

from .reconcile import FailurePolicy, OptimisticCommand, Reconciler
from .remote import RemoteStore, RemoteStoreError
from .schema import (
    FALLBACK_PRIORITY,
    MAX_PRIORITY,
    MIN_PRIORITY,
    CommandOutcome,
    ProvisionalIdGenerator,
    Todo,
    validate_title,
)
from .store import TodoStore

logger = logging.getLogger("todosync.dispatcher")


class TodoDispatcher:
    """
    Command Dispatcher for the active todo list.

    Owns the Local State Store together with its Reconciler; nothing else
    should mutate the store while a dispatcher is driving it.
    """

    def __init__(
        self,
        store: TodoStore,
        remote: RemoteStore,
        *,
        ids: Optional[ProvisionalIdGenerator] = None,
        reconciler: Optional[Reconciler] = None,
        mark_all_concurrent: bool = False,
    ):
        self.store = store
        self.remote = remote
        self.mark_all_concurrent = mark_all_concurrent
        self._ids = ids or ProvisionalIdGenerator()
        self._reconciler = reconciler or Reconciler()
        self._locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}  # holders + waiters per id
        self._aliases: Dict[int, int] = {}  # provisional id -> confirmed id

    # ========================================
    # CREATION
    # ========================================

    async def add(self, title: str) -> CommandOutcome:
        """Add a todo; kept locally with priority 0 if the server is unreachable"""
        clean = validate_title(title)
        if clean is None:
            logger.debug(f"Rejected title for add: {title!r}")
            return CommandOutcome.REJECTED

        provisional = Todo(
            id=self._ids.next_id(self.store),
            title=clean,
            priority=FALLBACK_PRIORITY,
        )

        def promote(created: Todo) -> None:
            # Gone means a later clear_all or fetch_active dropped it; keep it dropped
            if self.store.remove(provisional.id) is None:
                logger.debug(f"Provisional #{provisional.id} gone before confirmation, not re-inserting")
            else:
                self.store.upsert(created)
            if created.id != provisional.id:
                self._aliases[provisional.id] = created.id

        async with self._lock(provisional.id):
            return await self._reconciler.run(OptimisticCommand(
                name=f"add '{clean}'",
                apply=lambda: self.store.upsert(provisional),
                remote=lambda: self.remote.create(clean),
                confirm=promote,
                on_failure=FailurePolicy.KEEP,
            ))

    # ========================================
    # PER-ITEM MUTATIONS
    # ========================================

    async def toggle_completed(self, todo_id: int) -> CommandOutcome:
        async with self._serialized(todo_id) as todo_id:
            todo = self.store.get(todo_id)
            if todo is None:
                return self._noop("toggle", todo_id, "not found")

            previous = todo.completed
            return await self._reconciler.run(OptimisticCommand(
                name=f"toggle #{todo_id}",
                apply=lambda: self._patch(todo_id, completed=not previous),
                revert=lambda: self._patch(todo_id, completed=previous),
                remote=lambda: self.remote.toggle_complete(todo_id),
            ))

    async def rename(self, todo_id: int, new_title: str) -> CommandOutcome:
        clean = validate_title(new_title)
        if clean is None:
            logger.debug(f"Rejected title for rename #{todo_id}: {new_title!r}")
            return CommandOutcome.REJECTED

        async with self._serialized(todo_id) as todo_id:
            todo = self.store.get(todo_id)
            if todo is None:
                return self._noop("rename", todo_id, "not found")

            previous = todo.title
            return await self._reconciler.run(OptimisticCommand(
                name=f"rename #{todo_id} to '{clean}'",
                apply=lambda: self._patch(todo_id, title=clean),
                revert=lambda: self._patch(todo_id, title=previous),
                remote=lambda: self.remote.rename(todo_id, clean),
            ))

    async def reprioritize_up(self, todo_id: int) -> CommandOutcome:
        return await self._reprioritize(todo_id, +1)

    async def reprioritize_down(self, todo_id: int) -> CommandOutcome:
        return await self._reprioritize(todo_id, -1)

    async def _reprioritize(self, todo_id: int, delta: int) -> CommandOutcome:
        action = "increase priority" if delta > 0 else "decrease priority"
        async with self._serialized(todo_id) as todo_id:
            todo = self.store.get(todo_id)
            if todo is None:
                return self._noop(action, todo_id, "not found")
            if todo.completed:
                return self._noop(action, todo_id, "completed")
            if delta > 0 and todo.priority >= MAX_PRIORITY:
                return self._noop(action, todo_id, f"already at {MAX_PRIORITY}")
            if delta < 0 and todo.priority <= MIN_PRIORITY:
                return self._noop(action, todo_id, f"already at {todo.priority}")

            previous = todo.priority
            call = self.remote.increase_priority if delta > 0 else self.remote.decrease_priority
            return await self._reconciler.run(OptimisticCommand(
                name=f"{action} #{todo_id}",
                apply=lambda: self._patch(todo_id, priority=previous + delta),
                revert=lambda: self._patch(todo_id, priority=previous),
                remote=lambda: call(todo_id),
            ))

    async def delete(self, todo_id: int) -> CommandOutcome:
        async with self._serialized(todo_id) as todo_id:
            todo = self.store.get(todo_id)
            if todo is None:
                return self._noop("delete", todo_id, "not found")

            return await self._reconciler.run(OptimisticCommand(
                name=f"delete #{todo_id}",
                apply=lambda: self.store.remove(todo_id),
                revert=lambda: self._restore([todo]),
                remote=lambda: self.remote.delete(todo_id),
            ))

    # ========================================
    # BULK MUTATIONS
    # ========================================

    async def clear_all(self) -> CommandOutcome:
        removed = self.store.get_all()
        return await self._reconciler.run(OptimisticCommand(
            name="clear all",
            apply=lambda: self.store.replace_all([]),
            revert=lambda: self._restore(removed),
            remote=self.remote.clear_all,
        ))

    async def archive_completed(self) -> CommandOutcome:
        """Move completed todos out of the active set"""
        completed = [todo for todo in self.store.get_all() if todo.completed]

        def apply() -> None:
            for todo in completed:
                self.store.remove(todo.id)

        return await self._reconciler.run(OptimisticCommand(
            name=f"archive {len(completed)} completed",
            apply=apply,
            revert=lambda: self._restore(completed),
            remote=self.remote.archive_completed,
        ))

    async def mark_all_completed(self, *, concurrent: Optional[bool] = None) -> CommandOutcome:
        """
        Toggle every incomplete todo remotely, then mark them completed.

        Sequential by default (one call per item, stopping at the first
        failure). With `concurrent` all calls are in flight at once and
        joined before the local update. Only items whose remote toggle
        succeeded are marked locally when something fails.
        """
        if concurrent is None:
            concurrent = self.mark_all_concurrent

        pending = [todo for todo in self.store.get_all() if not todo.completed]
        if not pending:
            return self._noop("mark all completed", None, "nothing incomplete")

        if concurrent:
            confirmed = await self._toggle_concurrently(pending)
        else:
            confirmed = await self._toggle_sequentially(pending)

        if len(confirmed) == len(pending):
            for todo in self.store.get_all():
                if not todo.completed:
                    self._patch(todo.id, completed=True)
            logger.info(f"✅ Confirmed: mark all completed ({len(pending)} todos)")
            return CommandOutcome.CONFIRMED

        for todo_id in confirmed:
            self._patch(todo_id, completed=True)
        logger.warning(f"⚠️ Mark all completed: {len(confirmed)}/{len(pending)} confirmed")
        return CommandOutcome.PARTIAL if confirmed else CommandOutcome.FAILED

    async def _toggle_sequentially(self, pending: List[Todo]) -> List[int]:
        confirmed = []
        for todo in pending:
            try:
                await self.remote.toggle_complete(todo.id)
            except RemoteStoreError as e:
                logger.warning(f"Toggle #{todo.id} failed, stopping mark-all: {e}")
                break
            confirmed.append(todo.id)
        return confirmed

    async def _toggle_concurrently(self, pending: List[Todo]) -> List[int]:
        results = await asyncio.gather(
            *(self.remote.toggle_complete(todo.id) for todo in pending),
            return_exceptions=True,
        )
        confirmed = []
        for todo, result in zip(pending, results):
            if isinstance(result, RemoteStoreError):
                logger.warning(f"Toggle #{todo.id} failed during mark-all: {result}")
            elif isinstance(result, BaseException):
                raise result
            else:
                confirmed.append(todo.id)
        return confirmed

    # ========================================
    # READS
    # ========================================

    async def fetch_active(self) -> CommandOutcome:
        """Replace the active set with the server's view"""
        try:
            todos = await self.remote.list_active()
        except RemoteStoreError as e:
            logger.error(f"❌ Fetching active todos failed, keeping local state: {e}")
            return CommandOutcome.FAILED

        self.store.replace_all(todos)
        # Provisional ids no command is waiting on cannot be referenced again
        self._aliases = {
            provisional: confirmed
            for provisional, confirmed in self._aliases.items()
            if provisional in self._lock_users
        }
        logger.info(f"📂 Fetched {len(todos)} active todos")
        return CommandOutcome.CONFIRMED

    async def fetch_archived(self) -> List[Todo]:
        """Archived todos are not mirrored locally; returned straight to the caller"""
        try:
            return await self.remote.list_archived()
        except RemoteStoreError as e:
            logger.error(f"❌ Fetching archived todos failed: {e}")
            return []

    async def ping(self) -> Optional[str]:
        try:
            return await self.remote.welcome()
        except RemoteStoreError as e:
            logger.warning(f"Remote store unreachable: {e}")
            return None

    # ========================================
    # HELPER METHODS
    # ========================================

    @asynccontextmanager
    async def _lock(self, todo_id: int) -> AsyncIterator[None]:
        """Hold the FIFO lock for one id; dropped once no holder or waiter is left"""
        lock = self._locks.get(todo_id)
        if lock is None:
            lock = self._locks[todo_id] = asyncio.Lock()
        self._lock_users[todo_id] = self._lock_users.get(todo_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[todo_id] -= 1
            if not self._lock_users[todo_id]:
                del self._lock_users[todo_id]
                del self._locks[todo_id]

    @asynccontextmanager
    async def _serialized(self, todo_id: int) -> AsyncIterator[int]:
        """
        Lock the id a command really targets and yield it.

        A provisional id can be promoted while its caller waits, so the id
        is resolved again under the lock and re-locked if it moved.
        """
        while True:
            target = self._resolve(todo_id)
            async with self._lock(target):
                if self._resolve(target) == target:
                    yield target
                    return
            todo_id = target

    def _resolve(self, todo_id: int) -> int:
        """Follow provisional ids to the id the server confirmed"""
        while todo_id in self._aliases:
            todo_id = self._aliases[todo_id]
        return todo_id

    def _patch(self, todo_id: int, **fields) -> None:
        """Replace fields of a todo if it is still in the active set"""
        todo = self.store.get(todo_id)
        if todo is not None:
            self.store.upsert(todo.model_copy(update=fields))

    def _restore(self, todos: Iterable[Todo]) -> None:
        """Re-insert removed todos whose id has not reappeared since"""
        for todo in todos:
            if todo.id not in self.store:
                self.store.upsert(todo)

    def _noop(self, action: str, todo_id: Optional[int], reason: str) -> CommandOutcome:
        target = f" #{todo_id}" if todo_id is not None else ""
        logger.debug(f"Skipped {action}{target}: {reason}")
        return CommandOutcome.NOOP
