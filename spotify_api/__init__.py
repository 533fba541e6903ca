"""Spotify integration: PKCE login, persisted session and Web API reads.

SessionManager is the only component that touches the stored session keys;
SpotifyClient and the menus go through it for tokens.
"""

from .client import SpotifyClient
from .data_loader import SpotifyDataLoader
from .session_manager import Session, SessionManager
from .storage import JsonFileStore, KeyValueStore, MemoryStore

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "Session",
    "SessionManager",
    "SpotifyClient",
    "SpotifyDataLoader",
]
