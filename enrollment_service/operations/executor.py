"""Generic operation executor.

    validate -> run body in one transaction -> hooks -> classify -> result

The executor knows nothing about enrollments or progress: callers hand
it an OperationDescriptor naming the validator and the transaction
body.  It never raises to its caller (except on cancellation); every
outcome is an OperationResult, and retry decisions are left to the
caller via the ``retryable`` flag on failures.
"""

from __future__ import annotations

import asyncio
import errno
import inspect
import itertools
import logging
import socket
import time
import traceback
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError

from enrollment_service.core.context import operation_context
from enrollment_service.core.metrics import (
    OPERATION_COUNT,
    OPERATION_DURATION,
    RETRYABLE_FAILURES,
)
from enrollment_service.operations.errors import DataManagerError
from enrollment_service.repos.unit_of_work import Store, Transaction
from enrollment_service.validators.result import ValidationResult

logger = logging.getLogger(__name__)

P = TypeVar("P")
T = TypeVar("T")

VALIDATION_ERROR = "VALIDATION_ERROR"
OPERATION_ERROR = "OPERATION_ERROR"

# PostgreSQL SQLSTATEs: deadlock_detected, serialization_failure
RETRYABLE_SQLSTATES = frozenset({"40P01", "40001"})
_RETRYABLE_ERRNOS = frozenset({errno.ECONNRESET, errno.ETIMEDOUT, errno.EPIPE})


@dataclass(frozen=True)
class OperationDescriptor(Generic[P, T]):
    type: str
    params: P
    executor: Callable[[Transaction, P], Awaitable[T]]
    validator: Callable[[P], Awaitable[ValidationResult]] | None = None
    on_success: Callable[[T], Any] | None = None
    on_failure: Callable[[BaseException], Any] | None = None
    retryable: bool = True
    max_retries: int | None = None


@dataclass(frozen=True, slots=True)
class OperationFailure:
    code: str  # VALIDATION_ERROR|OPERATION_ERROR
    message: str
    retryable: bool
    details: tuple[str, ...] = ()
    max_retries: int = 0


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    success: bool
    operation_id: str
    timestamp: int
    data: T | None = None
    error: OperationFailure | None = None
    warnings: tuple[str, ...] = ()
    duration_ms: float = 0.0


class OperationIdGenerator:
    """``op_<epoch ms>_<counter>``; the counter is the only cross-call state."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"op_{int(self._clock() * 1000)}_{next(self._counter)}"


def _sqlstate(exc: BaseException) -> str | None:
    for attr in ("sqlstate", "pgcode", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, str):
            return value
    return None


def is_retryable_error(exc: BaseException) -> bool:
    """Classify a failure as transient (safe to re-run) or permanent."""
    if isinstance(exc, DataManagerError):
        return exc.retryable

    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, IntegrityError):
            return False
        if isinstance(current, DBAPIError) and current.connection_invalidated:
            return True
        if isinstance(current, (ConnectionError, TimeoutError, asyncio.TimeoutError)):
            return True
        if isinstance(current, socket.gaierror):
            return True
        if isinstance(current, OSError) and current.errno in _RETRYABLE_ERRNOS:
            return True
        if _sqlstate(current) in RETRYABLE_SQLSTATES:
            return True
        current = getattr(current, "orig", None) or current.__cause__

    message = str(exc).lower()
    return "connection" in message or "timeout" in message


class OperationExecutor:
    def __init__(
        self,
        store: Store,
        *,
        id_generator: Callable[[], str] | None = None,
        clock: Callable[[], float] = time.time,
        default_max_retries: int = 3,
        include_tracebacks: bool = False,
    ) -> None:
        self._store = store
        self._next_id = id_generator or OperationIdGenerator(clock)
        self._clock = clock
        self._default_max_retries = default_max_retries
        self._include_tracebacks = include_tracebacks

    async def execute(
        self, descriptor: OperationDescriptor[P, T]
    ) -> OperationResult[T]:
        operation_id = self._next_id()
        start = time.monotonic()

        with operation_context(operation_id, descriptor.type):
            warnings: tuple[str, ...] = ()
            try:
                if descriptor.validator is not None:
                    validation = await descriptor.validator(descriptor.params)
                    if not validation.valid:
                        return self._validation_failure(
                            descriptor, operation_id, validation, start
                        )
                    warnings = validation.warnings
                    if warnings:
                        logger.warning(
                            "Validation warnings for %s: %s",
                            descriptor.type,
                            "; ".join(warnings),
                        )

                async with self._store.transaction() as tx:
                    data = await descriptor.executor(tx, descriptor.params)
            except Exception as exc:
                await self._run_hook(
                    "on_failure", descriptor, descriptor.on_failure, exc
                )
                return self._operation_failure(descriptor, operation_id, exc, start)

            await self._run_hook("on_success", descriptor, descriptor.on_success, data)

            duration_ms = self._elapsed_ms(descriptor, start)
            OPERATION_COUNT.labels(
                operation_type=descriptor.type, outcome="success"
            ).inc()
            logger.info(
                "Operation %s completed in %.1fms",
                descriptor.type,
                duration_ms,
                extra={"duration_ms": duration_ms},
            )
            return OperationResult(
                success=True,
                operation_id=operation_id,
                timestamp=int(self._clock()),
                data=data,
                warnings=warnings,
                duration_ms=duration_ms,
            )

    # --- helpers ---

    async def _run_hook(
        self,
        name: str,
        descriptor: OperationDescriptor[Any, Any],
        hook: Callable[[Any], Any] | None,
        arg: Any,
    ) -> None:
        # Hooks are side effects; their failure must not change the result
        if hook is None:
            return
        try:
            outcome = hook(arg)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("%s hook failed for %s", name, descriptor.type)

    def _elapsed_ms(
        self, descriptor: OperationDescriptor[Any, Any], start: float
    ) -> float:
        elapsed = time.monotonic() - start
        OPERATION_DURATION.labels(operation_type=descriptor.type).observe(elapsed)
        return round(elapsed * 1000, 1)

    def _validation_failure(
        self,
        descriptor: OperationDescriptor[Any, Any],
        operation_id: str,
        validation: ValidationResult,
        start: float,
    ) -> OperationResult[Any]:
        duration_ms = self._elapsed_ms(descriptor, start)
        OPERATION_COUNT.labels(
            operation_type=descriptor.type, outcome="validation_error"
        ).inc()
        message = ", ".join(validation.errors) or "Validation failed"
        logger.info(
            "Operation %s rejected by validation: %s",
            descriptor.type,
            message,
            extra={"duration_ms": duration_ms},
        )
        return OperationResult(
            success=False,
            operation_id=operation_id,
            timestamp=int(self._clock()),
            error=OperationFailure(
                code=VALIDATION_ERROR,
                message=message,
                retryable=False,
                details=validation.errors,
            ),
            warnings=validation.warnings,
            duration_ms=duration_ms,
        )

    def _operation_failure(
        self,
        descriptor: OperationDescriptor[Any, Any],
        operation_id: str,
        exc: Exception,
        start: float,
    ) -> OperationResult[Any]:
        duration_ms = self._elapsed_ms(descriptor, start)
        retryable = descriptor.retryable and is_retryable_error(exc)
        max_retries = 0
        if retryable:
            max_retries = (
                descriptor.max_retries
                if descriptor.max_retries is not None
                else self._default_max_retries
            )
            RETRYABLE_FAILURES.labels(operation_type=descriptor.type).inc()
        OPERATION_COUNT.labels(
            operation_type=descriptor.type, outcome="operation_error"
        ).inc()

        reason = exc.code if isinstance(exc, DataManagerError) else type(exc).__name__
        details: tuple[str, ...] = (reason,)
        if self._include_tracebacks:
            details += ("".join(traceback.format_exception(exc)),)

        log = logger.warning if isinstance(exc, DataManagerError) else logger.error
        log(
            "Operation %s failed after %.1fms (retryable=%s): %s",
            descriptor.type,
            duration_ms,
            retryable,
            exc,
            exc_info=not isinstance(exc, DataManagerError),
            extra={"duration_ms": duration_ms, "retryable": retryable},
        )
        return OperationResult(
            success=False,
            operation_id=operation_id,
            timestamp=int(self._clock()),
            error=OperationFailure(
                code=OPERATION_ERROR,
                message=str(exc) or "Operation failed",
                retryable=retryable,
                details=details,
                max_retries=max_retries,
            ),
            duration_ms=duration_ms,
        )
