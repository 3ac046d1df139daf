"""
Cache entry record and its persisted JSON form.
"""

import json
from dataclasses import dataclass
from typing import Any

from crowdcast.errors import CorruptEntryError


@dataclass(frozen=True)
class CacheEntry:
    """
    One cached payload with its lifetime.

    Entries are never mutated; a cache update replaces the whole entry
    under the same key.
    """
    payload: Any
    created_at: float
    expires_at: float

    @classmethod
    def create(cls, payload: Any, now: float, ttl: float) -> 'CacheEntry':
        return cls(payload=payload, created_at=now, expires_at=now + ttl)

    def is_valid(self, now: float) -> bool:
        """Valid strictly before the expiry instant."""
        return now < self.expires_at

    def to_json(self) -> str:
        return json.dumps({
            'payload': self.payload,
            'created_at': self.created_at,
            'expires_at': self.expires_at,
        })

    @classmethod
    def from_json(cls, raw: str) -> 'CacheEntry':
        """
        Decode a persisted entry.

        Raises CorruptEntryError for anything that is not a complete
        serialized entry (truncated writes, foreign data, wrong types).
        """
        try:
            data = json.loads(raw)
            return cls(
                payload=data['payload'],
                created_at=float(data['created_at']),
                expires_at=float(data['expires_at']),
            )
        except (TypeError, ValueError, KeyError) as e:
            raise CorruptEntryError(f'Unreadable cache entry: {e}') from e
