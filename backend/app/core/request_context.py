"""
Correlation ids for log lines and problem responses.

An HTTP request binds its X-Request-ID; a Celery task binds "task:<task id>"
so sweep logs can be traced to a single run. Lines emitted outside both
(startup, beat) carry "-".
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
import logging
from typing import Dict, Iterator, Optional

NO_REQUEST_ID = "-"

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_task_tokens: Dict[str, Token[str]] = {}


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    value = _request_id_var.get()
    return value if value else default


@contextmanager
def bound_request_id(request_id: str) -> Iterator[str]:
    token = _request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        _request_id_var.reset(token)


def task_request_id(task_id: str) -> str:
    return f"task:{task_id}"


def bind_task(task_id: str) -> None:
    """Bind a task id until unbind_task; Celery runs prerun and postrun in one context."""
    _task_tokens[task_id] = _request_id_var.set(task_request_id(task_id))


def unbind_task(task_id: str) -> None:
    token = _task_tokens.pop(task_id, None)
    if token is not None:
        _request_id_var.reset(token)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id(NO_REQUEST_ID)
        return True


def attach_request_id_filter(logger: Optional[logging.Logger] = None) -> None:
    target = logger or logging.getLogger()
    for handler in target.handlers:
        handler.addFilter(RequestIdFilter())
