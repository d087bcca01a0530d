"""
Module: costing_kernel.db.engine
Responsibility: Build SQLAlchemy engines for the costing store, hold the
    optional process-wide engine, and provide the transactional
    ``session_scope`` used by every SqlProductionStore method.
Architecture position: Kernel > DB.  Imports db/base.py (and models/ lazily
    for DDL); never imports services.

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED behind a pre-pinged QueuePool; the
      work-order version check supplies the write serialization the
      recompute needs.
    - SQLite (tests, embedding) uses one shared connection so an in-memory
      database is visible to every thread.
    - A session_scope either commits everything or rolls everything back.

Failure modes:
    - RuntimeError when the process-wide engine is used before
      init_engine_from_url().
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from costing_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


class _EngineHolder:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None


_current = _EngineHolder()


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
) -> Engine:
    """Engine for ``database_url``, pooled according to its dialect."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return create_engine(
            url, echo=echo, poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        url, echo=echo, poolclass=QueuePool,
        pool_size=pool_size, max_overflow=max_overflow, pool_pre_ping=pool_pre_ping,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """Build the process-wide engine and session factory, replacing any previous one."""
    reset_engine()
    engine = build_engine(database_url, echo=echo, **pool_options)
    _current.engine = engine
    _current.session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info("engine_initialized", extra={"dialect": engine.dialect.name, "echo": echo})
    return engine


def get_engine() -> Engine:
    if _current.engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _current.engine


def get_session_factory() -> sessionmaker[Session]:
    if _current.session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _current.session_factory


def reset_engine() -> None:
    """Dispose the process-wide engine, if any."""
    if _current.engine is not None:
        _current.engine.dispose()
    _current.engine = None
    _current.session_factory = None


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """
    One transaction: commit on normal exit, roll back and re-raise on error.

    Uses the process-wide factory when ``factory`` is None.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine | None = None) -> None:
    """Create every costing table (idempotent)."""
    from costing_kernel.db.base import Base
    import costing_kernel.models  # noqa: F401  registers the tables

    Base.metadata.create_all(engine or get_engine())


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every costing table."""
    from costing_kernel.db.base import Base
    import costing_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine or get_engine())
