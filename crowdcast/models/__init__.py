"""
Database models for CrowdCast.

The only persisted data is the client cache mirror; everything in it can
be rebuilt from the upstream APIs.
"""

from crowdcast.models.base import Base, create_engine_for, make_session_factory, session_scope, init_db
from crowdcast.models.cache_record import CacheRecord

__all__ = [
    'Base',
    'create_engine_for',
    'make_session_factory',
    'session_scope',
    'init_db',
    'CacheRecord',
]
