"""
TODOSYNC - Ordering Policy
==========================
Presentation order for the active set: highest priority first, then
lowest id. Computed on every read, never cached.
"""

from typing import Iterable, List, Tuple

from .schema import Todo


def sort_key(todo: Todo) -> Tuple[int, int]:
    return (-todo.priority, todo.id)


def order_todos(todos: Iterable[Todo]) -> List[Todo]:
    """Return todos in display order"""
    return sorted(todos, key=sort_key)


def precedes(a: Todo, b: Todo) -> bool:
    """True when `a` is displayed before `b`"""
    return sort_key(a) < sort_key(b)
