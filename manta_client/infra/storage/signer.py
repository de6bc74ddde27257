"""HTTP Signature request signing.

Every request is authenticated by signing its ``Date`` header with the
account's RSA private key. The key is identified to the store as
``/<login>/keys/<md5 fingerprint>``.

Dependencies:
    - cryptography
    - requests
"""

from __future__ import annotations

import base64
import hashlib
from email.utils import formatdate
from pathlib import Path

import requests
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from requests.auth import AuthBase

from manta_client.infra.storage.client import SigningError

SIGNATURE_ALGORITHM = "rsa-sha256"


def fingerprint_md5(public_key: rsa.RSAPublicKey) -> str:
    """Return the colon-separated MD5 fingerprint of an RSA public key, as ``ssh-keygen -l -E md5`` prints it."""
    openssh = public_key.public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )
    blob = base64.b64decode(openssh.split()[1])
    digest = hashlib.md5(blob).hexdigest()
    return ":".join(digest[i : i + 2] for i in range(0, len(digest), 2))


def load_private_key(key_path: str | Path, password: bytes | None = None) -> rsa.RSAPrivateKey:
    path = Path(key_path).expanduser()
    try:
        pem = path.read_bytes()
    except OSError as exc:
        raise SigningError(f"Cannot read private key {path}: {exc}") from exc
    try:
        key = serialization.load_pem_private_key(pem, password=password)
    except (TypeError, ValueError) as exc:
        raise SigningError(f"Cannot parse private key {path}: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SigningError(f"Private key {path} is not an RSA key")
    return key


class HttpSignatureAuth(AuthBase):
    """``requests`` auth hook that injects ``Date`` and ``Authorization`` headers."""

    def __init__(self, *, login: str, private_key: rsa.RSAPrivateKey, key_id: str | None = None):
        if not login:
            raise SigningError("A login is required to sign requests")
        actual = fingerprint_md5(private_key.public_key())
        if key_id is not None and _normalize_fingerprint(key_id) != actual:
            raise SigningError(
                f"Key fingerprint mismatch: configured {key_id}, key file has {actual}"
            )
        self._login = login
        self._private_key = private_key
        self.fingerprint = actual

    @classmethod
    def from_key_file(
        cls, *, login: str, key_path: str | Path, key_id: str | None = None
    ) -> "HttpSignatureAuth":
        return cls(login=login, private_key=load_private_key(key_path), key_id=key_id)

    @property
    def key_id(self) -> str:
        return f"/{self._login}/keys/{self.fingerprint}"

    def sign(self, date: str) -> str:
        signature = self._private_key.sign(
            f"date: {date}".encode("utf-8"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("ascii")

    def authorization_header(self, date: str) -> str:
        return (
            f'Signature keyId="{self.key_id}",algorithm="{SIGNATURE_ALGORITHM}",'
            f'headers="date",signature="{self.sign(date)}"'
        )

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        date = request.headers.get("Date") or formatdate(usegmt=True)
        request.headers["Date"] = date
        request.headers["Authorization"] = self.authorization_header(date)
        return request


def _normalize_fingerprint(value: str) -> str:
    cleaned = value.strip().lower()
    if cleaned.startswith("md5:"):
        cleaned = cleaned[4:]
    return cleaned
