"""Tests for OperationExecutor: validate -> transaction -> hooks -> result."""

from __future__ import annotations

import asyncio
import errno
import re
import socket

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import DBAPIError, IntegrityError

from enrollment_service.models.progress import StudentProgress
from enrollment_service.operations.errors import (
    DuplicatePendingRequestError,
    RequestNotPendingError,
)
from enrollment_service.operations.executor import (
    OPERATION_ERROR,
    VALIDATION_ERROR,
    OperationDescriptor,
    OperationExecutor,
    OperationIdGenerator,
    is_retryable_error,
)
from enrollment_service.repos.in_memory_store import InMemoryStore
from enrollment_service.validators.result import ValidationResult
from tests.conftest import NOW, read_progress


class _PgError(Exception):
    """Stand-in for a driver error exposing a SQLSTATE."""

    def __init__(self, sqlstate: str) -> None:
        super().__init__("could not serialize access")
        self.sqlstate = sqlstate


async def _returns_42(tx, params):
    return 42


async def _valid(params) -> ValidationResult:
    return ValidationResult(valid=True)


def _descriptor(executor=_returns_42, **kwargs) -> OperationDescriptor:
    return OperationDescriptor(
        type="test_op", params={"x": 1}, executor=executor, **kwargs
    )


@pytest.fixture
def executor(store: InMemoryStore) -> OperationExecutor:
    return OperationExecutor(store, clock=lambda: float(NOW))


# ---- success ----


def test_success_returns_data_and_metadata(executor: OperationExecutor) -> None:
    result = asyncio.run(executor.execute(_descriptor()))
    assert result.success is True
    assert result.data == 42
    assert result.error is None
    assert result.timestamp == NOW
    assert re.fullmatch(r"op_\d+_\d+", result.operation_id)
    assert result.duration_ms >= 0


def test_operation_ids_are_unique(executor: OperationExecutor) -> None:
    ids = {asyncio.run(executor.execute(_descriptor())).operation_id for _ in range(5)}
    assert len(ids) == 5


def test_id_generator_embeds_clock_millis() -> None:
    generate = OperationIdGenerator(clock=lambda: 1.5)
    assert generate() == "op_1500_1"
    assert generate() == "op_1500_2"


def test_validation_warnings_are_carried_on_success(
    executor: OperationExecutor,
) -> None:
    async def warn(params) -> ValidationResult:
        return ValidationResult.from_messages([], ["heads up"])

    result = asyncio.run(executor.execute(_descriptor(validator=warn)))
    assert result.success is True
    assert result.warnings == ("heads up",)


# ---- validation failures ----


def test_invalid_params_skip_the_transaction(executor: OperationExecutor) -> None:
    calls: list[str] = []

    async def body(tx, params):
        calls.append("executor")
        return None

    async def invalid(params) -> ValidationResult:
        return ValidationResult.from_messages(["bad user", "bad course"])

    result = asyncio.run(executor.execute(_descriptor(body, validator=invalid)))

    assert calls == []
    assert result.success is False
    assert result.error is not None
    assert result.error.code == VALIDATION_ERROR
    assert result.error.retryable is False
    assert result.error.details == ("bad user", "bad course")
    assert "bad user" in result.error.message


def test_validation_failure_does_not_call_on_failure(
    executor: OperationExecutor,
) -> None:
    seen: list[BaseException] = []

    async def invalid(params) -> ValidationResult:
        return ValidationResult.from_messages(["nope"])

    asyncio.run(
        executor.execute(_descriptor(validator=invalid, on_failure=seen.append))
    )
    assert seen == []


def test_validator_that_raises_is_an_operation_error(
    executor: OperationExecutor,
) -> None:
    async def broken(params) -> ValidationResult:
        raise ConnectionError("connection refused")

    result = asyncio.run(executor.execute(_descriptor(validator=broken)))
    assert result.error is not None
    assert result.error.code == OPERATION_ERROR
    assert result.error.retryable is True


# ---- operation failures ----


def test_domain_error_is_not_retryable(executor: OperationExecutor) -> None:
    async def body(tx, params):
        raise RequestNotPendingError(7, "approved")

    result = asyncio.run(executor.execute(_descriptor(body)))
    assert result.success is False
    assert result.error is not None
    assert result.error.code == OPERATION_ERROR
    assert result.error.retryable is False
    assert result.error.details[0] == "REQUEST_NOT_PENDING"
    assert "not pending" in result.error.message


def test_transient_error_is_retryable_with_default_max_retries(
    executor: OperationExecutor,
) -> None:
    async def body(tx, params):
        raise ConnectionResetError(errno.ECONNRESET, "reset by peer")

    result = asyncio.run(executor.execute(_descriptor(body)))
    assert result.error is not None
    assert result.error.retryable is True
    assert result.error.max_retries == 3
    assert result.error.details[0] == "ConnectionResetError"


def test_descriptor_max_retries_overrides_default(
    executor: OperationExecutor,
) -> None:
    async def body(tx, params):
        raise TimeoutError()

    result = asyncio.run(executor.execute(_descriptor(body, max_retries=7)))
    assert result.error is not None
    assert result.error.max_retries == 7


def test_non_retryable_descriptor_masks_transient_error(
    executor: OperationExecutor,
) -> None:
    async def body(tx, params):
        raise TimeoutError()

    result = asyncio.run(executor.execute(_descriptor(body, retryable=False)))
    assert result.error is not None
    assert result.error.retryable is False
    assert result.error.max_retries == 0


def test_failure_rolls_back_writes(
    store: InMemoryStore, executor: OperationExecutor
) -> None:
    async def body(tx, params):
        await tx.progress.add(StudentProgress.new(student_id=1, course_id=10, now=NOW))
        raise DuplicatePendingRequestError(1, 10)

    asyncio.run(executor.execute(_descriptor(body)))
    assert read_progress(store, 1, 10) is None


def test_after_commit_callbacks_skipped_on_failure(
    executor: OperationExecutor,
) -> None:
    published: list[str] = []

    async def body(tx, params):
        tx.after_commit(lambda: published.append("event"))
        raise RuntimeError("boom")

    asyncio.run(executor.execute(_descriptor(body)))
    assert published == []


def test_after_commit_callbacks_run_on_success(executor: OperationExecutor) -> None:
    published: list[str] = []

    async def body(tx, params):
        tx.after_commit(lambda: published.append("event"))
        return None

    asyncio.run(executor.execute(_descriptor(body)))
    assert published == ["event"]


def test_tracebacks_only_when_enabled(store: InMemoryStore) -> None:
    async def body(tx, params):
        raise RuntimeError("boom")

    quiet = asyncio.run(OperationExecutor(store).execute(_descriptor(body)))
    verbose = asyncio.run(
        OperationExecutor(store, include_tracebacks=True).execute(_descriptor(body))
    )
    assert quiet.error is not None and verbose.error is not None
    assert quiet.error.details == ("RuntimeError",)
    assert len(verbose.error.details) == 2
    assert "Traceback" in verbose.error.details[1]


def test_cancellation_propagates_and_rolls_back(
    store: InMemoryStore, executor: OperationExecutor
) -> None:
    async def body(tx, params):
        await tx.progress.add(StudentProgress.new(student_id=1, course_id=10, now=NOW))
        raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(executor.execute(_descriptor(body)))
    assert read_progress(store, 1, 10) is None


# ---- hooks ----


def test_failing_success_hook_does_not_change_result(
    executor: OperationExecutor,
) -> None:
    def hook(data):
        raise RuntimeError("notification service down")

    result = asyncio.run(executor.execute(_descriptor(on_success=hook)))
    assert result.success is True
    assert result.data == 42


def test_async_hooks_are_awaited(executor: OperationExecutor) -> None:
    seen: list[object] = []

    async def on_success(data):
        seen.append(data)

    async def on_failure(exc):
        seen.append(type(exc).__name__)

    async def failing(tx, params):
        raise ValueError("bad")

    asyncio.run(executor.execute(_descriptor(on_success=on_success)))
    asyncio.run(executor.execute(_descriptor(failing, on_failure=on_failure)))
    assert seen == [42, "ValueError"]


def test_failing_failure_hook_keeps_primary_error(
    executor: OperationExecutor,
) -> None:
    def hook(exc):
        raise RuntimeError("hook broke")

    async def body(tx, params):
        raise RequestNotPendingError(1, "rejected")

    result = asyncio.run(executor.execute(_descriptor(body, on_failure=hook)))
    assert result.error is not None
    assert result.error.details[0] == "REQUEST_NOT_PENDING"


# ---- metrics ----


def test_outcomes_are_counted(executor: OperationExecutor) -> None:
    def count(outcome: str) -> float:
        value = REGISTRY.get_sample_value(
            "data_operations_total",
            {"operation_type": "metered_op", "outcome": outcome},
        )
        return value or 0.0

    async def invalid(params) -> ValidationResult:
        return ValidationResult.from_messages(["nope"])

    before = {o: count(o) for o in ("success", "validation_error")}
    asyncio.run(
        executor.execute(
            OperationDescriptor(type="metered_op", params=None, executor=_returns_42)
        )
    )
    asyncio.run(
        executor.execute(
            OperationDescriptor(
                type="metered_op",
                params=None,
                executor=_returns_42,
                validator=invalid,
            )
        )
    )
    assert count("success") == before["success"] + 1
    assert count("validation_error") == before["validation_error"] + 1


# ---- error classification ----


@pytest.mark.parametrize(
    "exc",
    [
        ConnectionError("refused"),
        TimeoutError(),
        asyncio.TimeoutError(),
        socket.gaierror(-2, "Name or service not known"),
        OSError(errno.ETIMEDOUT, "timed out"),
        _PgError("40P01"),
        _PgError("40001"),
        DBAPIError("UPDATE enrollments", {}, _PgError("40P01")),
        DBAPIError("SELECT 1", {}, Exception("gone"), connection_invalidated=True),
        RuntimeError("server closed the connection unexpectedly"),
    ],
    ids=lambda e: type(e).__name__,
)
def test_transient_failures_are_retryable(exc: BaseException) -> None:
    assert is_retryable_error(exc) is True


@pytest.mark.parametrize(
    "exc",
    [
        ValueError("bad input"),
        KeyError("missing"),
        _PgError("23505"),
        IntegrityError("INSERT", {}, _PgError("23505")),
        DuplicatePendingRequestError(1, 2),
        OSError(errno.ENOENT, "no such file"),
    ],
    ids=lambda e: type(e).__name__,
)
def test_permanent_failures_are_not_retryable(exc: BaseException) -> None:
    assert is_retryable_error(exc) is False


def test_classification_follows_cause_chain() -> None:
    try:
        try:
            raise _PgError("40001")
        except _PgError as inner:
            raise RuntimeError("commit failed") from inner
    except RuntimeError as outer:
        assert is_retryable_error(outer) is True
