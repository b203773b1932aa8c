"""
Double Write Cache

A cache client that reads from and writes to a primary store while
mirroring every write to an optional secondary store.
"""

__version__ = "1.0.0"

from .cache import DoubleWriteClient, MirrorPolicy, create_client
from .errors import StoreMismatchError, UnsupportedOperationError

__all__ = [
    "DoubleWriteClient",
    "MirrorPolicy",
    "create_client",
    "StoreMismatchError",
    "UnsupportedOperationError",
]
