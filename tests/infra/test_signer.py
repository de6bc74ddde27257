"""Tests for HTTP Signature request signing."""

from __future__ import annotations

import base64
import re

import pytest
import requests
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding

from manta_client.infra.storage.client import SigningError
from manta_client.infra.storage.signer import (
    HttpSignatureAuth,
    fingerprint_md5,
    load_private_key,
)


def _prepare(auth: HttpSignatureAuth) -> requests.PreparedRequest:
    request = requests.Request("GET", "https://manta.test/tester/stor", auth=auth)
    return request.prepare()


class TestFingerprint:
    def test_format(self, private_key):
        fingerprint = fingerprint_md5(private_key.public_key())

        assert re.fullmatch(r"([0-9a-f]{2}:){15}[0-9a-f]{2}", fingerprint)

    def test_matching_key_id_accepted(self, private_key):
        fingerprint = fingerprint_md5(private_key.public_key())

        auth = HttpSignatureAuth(login="tester", private_key=private_key, key_id=fingerprint.upper())

        assert auth.key_id == f"/tester/keys/{fingerprint}"

    def test_md5_prefix_accepted(self, private_key):
        fingerprint = fingerprint_md5(private_key.public_key())

        HttpSignatureAuth(login="tester", private_key=private_key, key_id=f"MD5:{fingerprint}")

    def test_mismatched_key_id(self, private_key):
        with pytest.raises(SigningError, match="mismatch"):
            HttpSignatureAuth(
                login="tester",
                private_key=private_key,
                key_id="9d:1c:f4:69:66:cb:bf:1a:40:b5:d2:c2:6a:0a:eb:2d",
            )

    def test_login_required(self, private_key):
        with pytest.raises(SigningError):
            HttpSignatureAuth(login="", private_key=private_key)


class TestSigning:
    def test_adds_date_and_authorization(self, signer):
        prepared = _prepare(signer)

        assert prepared.headers["Date"].endswith("GMT")
        authorization = prepared.headers["Authorization"]
        assert authorization.startswith(f'Signature keyId="{signer.key_id}"')
        assert 'algorithm="rsa-sha256"' in authorization
        assert 'headers="date"' in authorization

    def test_signature_verifies(self, signer, private_key):
        prepared = _prepare(signer)

        signature = re.search(r'signature="([^"]+)"', prepared.headers["Authorization"]).group(1)
        private_key.public_key().verify(
            base64.b64decode(signature),
            f"date: {prepared.headers['Date']}".encode("utf-8"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )

    def test_existing_date_is_signed(self, signer):
        request = requests.Request(
            "GET",
            "https://manta.test/tester/stor",
            headers={"Date": "Thu, 01 Jan 2026 00:00:00 GMT"},
            auth=signer,
        )

        prepared = request.prepare()

        assert prepared.headers["Date"] == "Thu, 01 Jan 2026 00:00:00 GMT"


class TestLoadPrivateKey:
    def test_from_key_file(self, key_file, private_key):
        auth = HttpSignatureAuth.from_key_file(login="tester", key_path=key_file)

        assert auth.fingerprint == fingerprint_md5(private_key.public_key())

    def test_missing_file(self, tmp_path):
        with pytest.raises(SigningError, match="Cannot read"):
            load_private_key(tmp_path / "absent")

    def test_garbage_file(self, tmp_path):
        path = tmp_path / "garbage"
        path.write_text("not a key")

        with pytest.raises(SigningError, match="Cannot parse"):
            load_private_key(path)

    def test_non_rsa_key(self, tmp_path):
        from cryptography.hazmat.primitives import serialization

        key = ec.generate_private_key(ec.SECP256R1())
        path = tmp_path / "id_ecdsa"
        path.write_bytes(
            key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )

        with pytest.raises(SigningError, match="not an RSA key"):
            load_private_key(path)
