"""
Compensation log for multi-step writes.

The hosted store gives no transaction across separate REST calls, so each
sale operation records an undo action after every step that succeeds. If a
later step raises, the recorded undo actions run in reverse order and the
original exception propagates unchanged.

Usage:
    with CompensationLog("create_sale", sale_id=sale_id) as log:
        insert_sale(sale)
        log.record("delete sale header", lambda: delete_sale(sale_id))
        ...

An undo that itself fails is logged at ERROR level and the remaining undo
actions still run. Whatever it failed to restore is left in place and named
in the log record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable, List, Optional, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompensationStep:
    description: str
    undo: Callable[[], Any]


class CompensationLog:
    """Ordered list of undo actions for one multi-step operation."""

    def __init__(self, operation: str, **context: Any) -> None:
        self.operation = operation
        self.context = {key: str(value) for key, value in context.items()}
        self._steps: List[CompensationStep] = []
        self.failed_undos: List[str] = []

    def __enter__(self) -> "CompensationLog":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        if exc is not None and isinstance(exc, Exception):
            self.rollback(exc)
        return False

    def record(self, description: str, undo: Callable[[], Any]) -> None:
        self._steps.append(CompensationStep(description=description, undo=undo))

    def rollback(self, cause: Exception) -> None:
        """Run every recorded undo action, newest first."""

        if not self._steps:
            return

        logger.warning(
            f"Rolling back {self.operation}: {len(self._steps)} step(s) to undo",
            extra={
                "operation": self.operation,
                "steps": len(self._steps),
                "cause": str(cause),
                **self.context,
            },
        )

        while self._steps:
            step = self._steps.pop()
            try:
                step.undo()
            except Exception:
                self.failed_undos.append(step.description)
                logger.exception(
                    f"Undo failed during {self.operation} rollback: {step.description}",
                    extra={"operation": self.operation, "step": step.description, **self.context},
                )
            else:
                logger.warning(
                    f"Undid {step.description}",
                    extra={"operation": self.operation, "step": step.description, **self.context},
                )


__all__ = ["CompensationLog", "CompensationStep"]
