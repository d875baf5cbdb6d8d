"""
Session correlation for log records.

Work for one customer's wizard, or one admin action on a booking, runs
inside ``session_scope``. Every record logged while the scope is active
carries its id as ``session_id``, including records from the HTTP client
and the catalog cache, which know nothing about sessions.

``load_config`` installs the filter on the root handlers and logs with
``SESSION_LOG_FORMAT``:

    2030-06-10 09:00:00 [WIZ-1a2b3c4d] [booking_engine.wizard.session] INFO: Booking bk-7 submitted
    2030-06-10 09:05:12 [BK-bk-7] [booking_engine.tools.booking] INFO: Booking bk-7 assigned to c-1
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_SESSION = "-"

SESSION_LOG_FORMAT = "%(asctime)s [%(session_id)s] [%(name)s] %(levelname)s: %(message)s"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


def get_session_id() -> str:
    return _session_id.get()


@contextmanager
def session_scope(session_id: str) -> Iterator[str]:
    """Tag records logged inside the block, and tasks created in it, with ``session_id``."""
    token = _session_id.set(session_id)
    try:
        yield session_id
    finally:
        _session_id.reset(token)


def booking_session_id(booking_id: str) -> str:
    """Correlation id for admin actions on one booking."""
    return f"BK-{booking_id}"


class SessionIdFilter(logging.Filter):
    """Adds ``session_id`` to records that do not carry one already."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def install_session_filter(handlers: Optional[list[logging.Handler]] = None) -> None:
    """Attach SessionIdFilter to ``handlers``, the root logger's handlers by default."""
    if handlers is None:
        handlers = logging.getLogger().handlers
    for handler in handlers:
        if not any(isinstance(f, SessionIdFilter) for f in handler.filters):
            handler.addFilter(SessionIdFilter())
