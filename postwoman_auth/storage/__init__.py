"""
LOT 2: Storage

Token Store et backends clé/valeur durables.
"""

from .interfaces import IKeyValueStorage, ITokenStore
from .key_value import MemoryStorage, FileStorage, StorageError
from .token_store import TokenStore

__all__ = [
    "IKeyValueStorage",
    "ITokenStore",
    "MemoryStorage",
    "FileStorage",
    "StorageError",
    "TokenStore",
]
