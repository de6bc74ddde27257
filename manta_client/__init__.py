"""Client library for a path-addressed remote object store."""

from manta_client.domain.objects import MantaObject, ObjectHeaders
from manta_client.infra.storage.client import (
    EncodingError,
    ErrorKind,
    MantaError,
    NotFound,
    ObjectStoreClient,
    ObjectTypeError,
    RequestFailed,
    SigningError,
)
from manta_client.infra.storage.manta_client import MantaClient
from manta_client.infra.storage.signer import HttpSignatureAuth

__all__ = [
    "EncodingError",
    "ErrorKind",
    "HttpSignatureAuth",
    "MantaClient",
    "MantaError",
    "MantaObject",
    "NotFound",
    "ObjectHeaders",
    "ObjectStoreClient",
    "ObjectTypeError",
    "RequestFailed",
    "SigningError",
]
