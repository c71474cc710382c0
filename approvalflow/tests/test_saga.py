import pytest

from approvalflow.app.result import Err, ErrorKind, Ok
from approvalflow.app.saga import Saga


def test_steps_run_in_order_and_share_context(app):
    seen = []
    saga = Saga("ordered")
    saga.add_step("a", lambda ctx: Ok(1))
    saga.add_step("b", lambda ctx: seen.append(dict(ctx)) or Ok(ctx["a"] + 1))
    result = saga.execute()
    assert result.ok
    assert result.value == {"a": 1, "b": 2}
    assert seen == [{"a": 1}]


def test_failed_step_unwinds_completed_steps_in_reverse(app):
    undone = []
    saga = Saga("unwind")
    saga.add_step("first", lambda ctx: Ok("one"), compensate=lambda ctx, v: undone.append(v) or Ok(None))
    saga.add_step("second", lambda ctx: Ok("two"), compensate=lambda ctx, v: undone.append(v) or Ok(None))
    saga.add_step("third", lambda ctx: Err.backend("boom"), compensate=lambda ctx, v: undone.append("never"))
    result = saga.execute()
    assert not result.ok
    assert result.kind == ErrorKind.BACKEND
    assert result.message == "boom"
    assert undone == ["two", "one"]


def test_raising_step_unwinds_then_reraises(app):
    undone = []

    def explode(ctx):
        raise RuntimeError("kaboom")

    saga = Saga("raise")
    saga.add_step("first", lambda ctx: Ok(1), compensate=lambda ctx, v: undone.append(v) or Ok(None))
    saga.add_step("second", explode)
    with pytest.raises(RuntimeError):
        saga.execute()
    assert undone == [1]


def test_failing_compensation_does_not_stop_the_unwind(app):
    undone = []

    def broken_undo(ctx, value):
        raise ValueError("cannot undo")

    saga = Saga("partial")
    saga.add_step("first", lambda ctx: Ok(1), compensate=lambda ctx, v: undone.append(v) or Ok(None))
    saga.add_step("second", lambda ctx: Ok(2), compensate=broken_undo)
    saga.add_step("third", lambda ctx: Ok(3), compensate=lambda ctx, v: Err.backend("still there"))
    saga.add_step("fourth", lambda ctx: Err.conflict("taken"))
    result = saga.execute()
    assert result.kind == ErrorKind.CONFLICT
    assert undone == [1]
