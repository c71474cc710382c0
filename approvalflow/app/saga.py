"""Compensating-transaction helper for multi-step backend operations.

Steps run in order. Each action receives the values produced by the steps
before it (keyed by step name) and returns a ``Result``. When a step returns
``Err`` or raises, the compensations of all completed steps run in reverse
order, then the original error is returned (or the exception re-raised).

    saga = Saga("create_workflow")
    saga.add_step("workflow", create_row, compensate=lambda ctx, row: delete_row(row))
    saga.add_step("steps", lambda ctx: insert_steps(ctx["workflow"]))
    result = saga.execute()
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from flask import current_app

from .result import Ok, Result

Action = Callable[[dict], Result]
Compensation = Callable[[dict, Any], Result]


@dataclass
class SagaStep:
    name: str
    action: Action
    compensate: Optional[Compensation] = None


@dataclass
class Saga:
    name: str
    steps: list = field(default_factory=list)
    completed: list = field(default_factory=list)

    def add_step(self, name: str, action: Action, compensate: "Compensation | None" = None) -> "Saga":
        self.steps.append(SagaStep(name, action, compensate))
        return self

    def execute(self) -> Result:
        context: dict = {}
        self.completed = []
        for step in self.steps:
            try:
                result = step.action(context)
            except Exception:
                current_app.logger.exception("saga %s: step %s raised", self.name, step.name)
                self._unwind(context)
                raise
            if not result.ok:
                current_app.logger.warning("saga %s: step %s failed: %s", self.name, step.name, result.message)
                self._unwind(context)
                return result
            context[step.name] = result.value
            self.completed.append(step)
        return Ok(context)

    def _unwind(self, context: dict) -> None:
        for step in reversed(self.completed):
            if step.compensate is None:
                continue
            try:
                undo = step.compensate(context, context.get(step.name))
            except Exception:
                current_app.logger.exception("saga %s: compensation for %s raised", self.name, step.name)
                continue
            if undo is not None and not undo.ok:
                current_app.logger.error(
                    "saga %s: compensation for %s failed: %s", self.name, step.name, undo.message
                )
        self.completed = []
