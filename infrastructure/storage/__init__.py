"""
Storage infrastructure - best-effort persistence of conversation context.
"""

from .context_store import (
    ContextStore,
    InMemoryContextStore,
    SQLiteContextStore,
    StreamlitSessionStore,
    NullContextStore,
    create_context_store
)

__all__ = [
    'ContextStore',
    'InMemoryContextStore',
    'SQLiteContextStore',
    'StreamlitSessionStore',
    'NullContextStore',
    'create_context_store'
]
