"""Object store access layer.

This module provides the protocol-based abstraction for path-addressed
object stores and the error types shared by its implementations.
"""

from .client import (
    EncodingError,
    ErrorKind,
    MantaError,
    NotFound,
    ObjectStoreClient,
    ObjectTypeError,
    RequestFailed,
    SigningError,
)

__all__ = [
    "EncodingError",
    "ErrorKind",
    "MantaError",
    "NotFound",
    "ObjectStoreClient",
    "ObjectTypeError",
    "RequestFailed",
    "SigningError",
]
