"""
CacheRecord model - persisted mirror of client cache entries.

One row per cache key. The value column holds the serialized entry
exactly as the cache wrote it; expires_at is duplicated into its own
indexed column so the sweep finds expired rows with one query instead
of decoding every value.
"""

from sqlalchemy import String, Text, Float
from sqlalchemy.orm import Mapped, mapped_column

from crowdcast.models.base import Base


class CacheRecord(Base):
    """Serialized cache entry keyed by its full cache key."""

    __tablename__ = 'cache_records'

    # Full key including namespace, e.g. 'crowdcast:prediction:airport=LIS&date=2025-12-31'
    key: Mapped[str] = mapped_column(
        String(512),
        primary_key=True,
        comment='Namespaced cache key'
    )

    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment='JSON-serialized cache entry'
    )

    expires_at: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        index=True,
        comment='Unix timestamp after which the entry is stale'
    )

    def __repr__(self) -> str:
        return f'<CacheRecord {self.key} expires={self.expires_at}>'
