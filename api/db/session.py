import time
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import sessionmaker, Session

from api.config import DATABASE_URL

_engine = None
_SessionLocal = None
_query_logging_attached = False
_sql_logger = logging.getLogger("api.db.sql")


def _format_statement(statement: str, *, max_length: int = 120) -> str:
    condensed = " ".join(statement.strip().split())
    if len(condensed) <= max_length:
        return condensed
    return condensed[: max_length - 1] + "…"


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    context._query_start_time = time.perf_counter()


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    if not _sql_logger.isEnabledFor(logging.DEBUG):
        return
    start = getattr(context, "_query_start_time", None)
    summary = _format_statement(statement)
    verb = summary.split(" ", 1)[0].upper() if summary else "SQL"
    if start is None:
        _sql_logger.debug("%s | %s", verb, summary)
        return
    _sql_logger.debug(
        "%s %.1f ms | %s", verb, (time.perf_counter() - start) * 1000.0, summary
    )


def _handle_error(context):
    statement = getattr(context, "statement", "") or ""
    _sql_logger.warning(
        "SQL error during '%s': %s",
        _format_statement(statement),
        context.original_exception,
    )


def _attach_sql_logging(engine):
    global _query_logging_attached
    if _query_logging_attached:
        return
    try:
        event.listen(engine, "before_cursor_execute", _before_cursor_execute)
        event.listen(engine, "after_cursor_execute", _after_cursor_execute)
        event.listen(engine, "handle_error", _handle_error)
    except InvalidRequestError:
        # create_engine may be stubbed out in tests.
        return
    _query_logging_attached = True


def _engine_kwargs(db_url: str) -> dict:
    if db_url.startswith("sqlite"):
        # Local development database shared with the FastAPI threadpool.
        return {"connect_args": {"check_same_thread": False}, "future": True}
    return {"pool_pre_ping": True, "future": True}


def init_engine(db_url: str | None = None):
    global _engine, _SessionLocal
    db_url = db_url or DATABASE_URL
    _engine = create_engine(db_url, **_engine_kwargs(db_url))
    _attach_sql_logging(_engine)
    _SessionLocal = sessionmaker(
        bind=_engine, autoflush=False, autocommit=False, future=True
    )


def get_engine():
    if _engine is None:
        init_engine()
    return _engine


def get_sessionmaker():
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def get_db() -> Iterator[Session]:
    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts: commits on success, rolls back on error."""
    SessionLocal = get_sessionmaker()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
