"""
TODOSYNC - Reconciliation Controller
====================================
Every mutation is expressed as an OptimisticCommand: the local change,
its inverse, and the remote call. The Reconciler applies the change,
awaits the remote call and then either confirms or rolls back.

Only RemoteStoreError is treated as a remote failure; anything else is
a bug and propagates.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from .remote import RemoteStoreError
from .schema import CommandOutcome

logger = logging.getLogger("todosync.reconcile")


class FailurePolicy(str, Enum):
    """What to do with the optimistic state when the remote call fails"""
    ROLLBACK = "rollback"   # A prior state exists: restore it
    KEEP = "keep"           # Creative mutation: keep the user's input locally


@dataclass
class OptimisticCommand:
    name: str
    apply: Callable[[], None]
    remote: Callable[[], Awaitable[Any]]
    revert: Optional[Callable[[], None]] = None
    confirm: Optional[Callable[[Any], None]] = None
    on_failure: FailurePolicy = FailurePolicy.ROLLBACK


class Reconciler:
    """Runs optimistic commands and resolves their outcome"""

    async def run(self, command: OptimisticCommand) -> CommandOutcome:
        command.apply()
        try:
            result = await command.remote()
        except RemoteStoreError as e:
            return self.rollback_or_fallback(command, e)
        return self.confirm(command, result)

    def confirm(self, command: OptimisticCommand, result: Any) -> CommandOutcome:
        """Adopt server-returned values; otherwise the optimistic state stands"""
        if command.confirm is not None:
            command.confirm(result)
        logger.info(f"✅ Confirmed: {command.name}")
        return CommandOutcome.CONFIRMED

    def rollback_or_fallback(self, command: OptimisticCommand, error: RemoteStoreError) -> CommandOutcome:
        if command.on_failure is FailurePolicy.KEEP:
            logger.warning(f"⚠️ {command.name} failed remotely, keeping local state: {error}")
            return CommandOutcome.KEPT_LOCAL

        if command.revert is not None:
            command.revert()
        logger.warning(f"↩️ {command.name} failed remotely, rolled back: {error}")
        return CommandOutcome.ROLLED_BACK
