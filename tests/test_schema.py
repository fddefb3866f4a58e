from __future__ import annotations

import pytest
from pydantic import ValidationError

from todosync.schema import (
    MAX_TITLE_LENGTH,
    CommandOutcome,
    ProvisionalIdGenerator,
    Todo,
    validate_title,
)


class TestTodo:
    def test_defaults_to_not_completed(self):
        todo = Todo(id=1, title="milk", priority=1)
        assert todo.completed is False

    def test_accepts_fallback_priority(self):
        assert Todo(id=1, title="milk", priority=0).priority == 0

    def test_rejects_negative_priority(self):
        with pytest.raises(ValidationError):
            Todo(id=1, title="milk", priority=-1)

    def test_accepts_rows_beyond_input_limits(self):
        todo = Todo(id=1, title="x" * (MAX_TITLE_LENGTH + 1), priority=200)
        assert (len(todo.title), todo.priority) == (MAX_TITLE_LENGTH + 1, 200)


class TestValidateTitle:
    def test_strips_whitespace(self):
        assert validate_title("  milk  ") == "milk"

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_rejects_blank(self, raw):
        assert validate_title(raw) is None

    def test_accepts_exactly_max_length(self):
        title = "x" * MAX_TITLE_LENGTH
        assert validate_title(title) == title

    def test_rejects_23_characters(self):
        assert validate_title("x" * 23) is None


class TestProvisionalIdGenerator:
    def test_seeds_from_millisecond_clock(self):
        ids = ProvisionalIdGenerator(clock=lambda: 5_000_000_000)
        assert ids.next_id() == 5_000

    def test_strictly_increasing_under_frozen_clock(self):
        ids = ProvisionalIdGenerator(clock=lambda: 5_000_000_000)
        assert [ids.next_id() for _ in range(3)] == [5_000, 5_001, 5_002]

    def test_skips_taken_ids(self):
        ids = ProvisionalIdGenerator(clock=lambda: 5_000_000_000)
        assert ids.next_id(taken={5_000, 5_001}) == 5_002

    def test_never_goes_backwards_when_clock_does(self):
        ticks = iter([9_000_000_000, 1_000_000_000])
        ids = ProvisionalIdGenerator(clock=lambda: next(ticks))
        first = ids.next_id()
        assert ids.next_id() == first + 1


def test_outcome_values_are_strings():
    assert CommandOutcome.KEPT_LOCAL == "kept_local"
