"""
Persistent key/value storage for the client cache tier.

The store only needs five primitives from its durable layer, so any
backend satisfying the PersistentStorage protocol can be plugged in.
The default implementation keeps rows in a SQL table via SQLAlchemy,
which in practice means a local SQLite file.

All backend failures surface as PersistenceError; the store decides
how to degrade.
"""

import logging
from typing import List, Optional, Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from crowdcast.errors import PersistenceError
from crowdcast.models import CacheRecord, create_engine_for, make_session_factory, session_scope, init_db

logger = logging.getLogger(__name__)


@runtime_checkable
class PersistentStorage(Protocol):
    """Protocol for the durable layer behind a client cache."""

    def read(self, key: str) -> Optional[str]:
        """Return the serialized entry for key, or None if absent."""
        ...

    def write(self, key: str, value: str, expires_at: float) -> None:
        """Insert or replace the serialized entry for key."""
        ...

    def remove(self, key: str) -> None:
        """Delete key if present."""
        ...

    def list_keys(self, prefix: str) -> List[str]:
        """Return every stored key starting with prefix."""
        ...

    def list_expired(self, prefix: str, now: float) -> List[str]:
        """Return stored keys starting with prefix whose expires_at <= now."""
        ...


class SqlPersistentStorage:
    """
    PersistentStorage backed by the cache_records table.

    Each call runs in its own short session so a failed write never
    leaves a transaction open for the next caller.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_engine_for(url, echo=echo)
        self._session_factory = make_session_factory(self.engine)
        try:
            init_db(self.engine)
        except SQLAlchemyError as e:
            raise PersistenceError(f'Cannot initialize cache storage at {url}: {e}') from e

    def read(self, key: str) -> Optional[str]:
        try:
            with session_scope(self._session_factory) as session:
                record = session.get(CacheRecord, key)
                return record.value if record else None
        except SQLAlchemyError as e:
            raise PersistenceError(f'Read failed for {key}: {e}') from e

    def write(self, key: str, value: str, expires_at: float) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.merge(CacheRecord(key=key, value=value, expires_at=expires_at))
        except SQLAlchemyError as e:
            raise PersistenceError(f'Write failed for {key}: {e}') from e

    def remove(self, key: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.execute(delete(CacheRecord).where(CacheRecord.key == key))
        except SQLAlchemyError as e:
            raise PersistenceError(f'Remove failed for {key}: {e}') from e

    def list_keys(self, prefix: str) -> List[str]:
        try:
            with session_scope(self._session_factory) as session:
                rows = session.execute(
                    select(CacheRecord.key).where(
                        CacheRecord.key.startswith(prefix, autoescape=True)
                    )
                )
                return [row[0] for row in rows]
        except SQLAlchemyError as e:
            raise PersistenceError(f'Listing keys under {prefix!r} failed: {e}') from e

    def list_expired(self, prefix: str, now: float) -> List[str]:
        try:
            with session_scope(self._session_factory) as session:
                rows = session.execute(
                    select(CacheRecord.key).where(
                        CacheRecord.expires_at <= now,
                        CacheRecord.key.startswith(prefix, autoescape=True),
                    )
                )
                return [row[0] for row in rows]
        except SQLAlchemyError as e:
            raise PersistenceError(f'Listing expired keys under {prefix!r} failed: {e}') from e

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
        logger.debug(f'Disposed cache storage engine for {self.url}')
