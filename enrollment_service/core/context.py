"""Context variables shared by the HTTP layer and the operation executor.

The middleware sets ``request_id_var`` once per HTTP request; the
executor sets ``operation_id_var`` / ``operation_type_var`` for the
duration of one operation.  A logging filter installed on the log handlers
copies the current values onto every LogRecord, so any module
that logs during an operation is tagged without passing ids around.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
operation_id_var: ContextVar[str] = ContextVar("operation_id", default="-")
operation_type_var: ContextVar[str] = ContextVar("operation_type", default="-")


class ContextFilter(logging.Filter):
    """Attach request/operation ids from the context vars to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        record.operation_id = operation_id_var.get()  # type: ignore[attr-defined]
        record.operation_type = operation_type_var.get()  # type: ignore[attr-defined]
        return True


def install_context_filter(target: logging.Filterer) -> None:
    """Install on handlers: logger filters skip records propagated from children."""
    if not any(isinstance(f, ContextFilter) for f in target.filters):
        target.addFilter(ContextFilter())


@contextmanager
def operation_context(operation_id: str, operation_type: str) -> Iterator[None]:
    id_token = operation_id_var.set(operation_id)
    type_token = operation_type_var.set(operation_type)
    try:
        yield
    finally:
        operation_type_var.reset(type_token)
        operation_id_var.reset(id_token)

