from __future__ import annotations

import itertools

from todosync.ordering import order_todos, precedes
from todosync.schema import Todo


def _todo(todo_id: int, priority: int) -> Todo:
    return Todo(id=todo_id, title=f"t{todo_id}", priority=priority)


def test_higher_priority_first():
    ordered = order_todos([_todo(1, 2), _todo(2, 9), _todo(3, 5)])
    assert [t.id for t in ordered] == [2, 3, 1]


def test_equal_priority_ordered_by_id():
    ordered = order_todos([_todo(7, 3), _todo(2, 3), _todo(5, 3)])
    assert [t.id for t in ordered] == [2, 5, 7]


def test_empty_input():
    assert order_todos([]) == []


def test_pairwise_order_holds():
    todos = [_todo(i, p) for i, p in enumerate([3, 1, 3, 10, 0, 1, 7], start=1)]
    ordered = order_todos(todos)
    for a, b in itertools.combinations(ordered, 2):
        assert a.priority > b.priority or (a.priority == b.priority and a.id < b.id)
        assert precedes(a, b)
        assert not precedes(b, a)


def test_provisional_ids_sort_after_server_ids_at_equal_priority():
    ordered = order_todos([_todo(1_760_000_000_000, 1), _todo(4, 1)])
    assert [t.id for t in ordered] == [4, 1_760_000_000_000]
