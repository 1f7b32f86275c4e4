"""
Storage Module - Black Box Interface

Purpose: Abstract session persistence
Interface: get_session(), save_session(), delete_session(), get_all_sessions()
Hidden: Redis specifics, connection handling, serialization

Can be replaced with any backend implementing SessionStore.
"""

from .stores import MemorySessionStore, RedisSessionStore, SessionStore

__all__ = ["SessionStore", "MemorySessionStore", "RedisSessionStore"]
