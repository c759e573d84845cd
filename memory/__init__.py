"""Memory package for locally persisted client state."""

from memory.local_storage import LocalStorage, USER_KEY, TOKEN_KEY

__all__ = [
    "LocalStorage",
    "USER_KEY",
    "TOKEN_KEY",
]
