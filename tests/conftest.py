from __future__ import annotations

import uuid

import pytest
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from manta_client.common.config import get_settings
from manta_client.infra.storage.manta_client import MantaClient
from manta_client.infra.storage.signer import HttpSignatureAuth
from tests.fake_manta import FakeMantaAdapter

TEST_URL = "https://manta.test"
TEST_LOGIN = "tester"
TEST_DATA = "EPISODEII_IS_BEST_EPISODE"


@pytest.fixture(scope="session")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def key_file(private_key, tmp_path_factory):
    path = tmp_path_factory.mktemp("keys") / "id_rsa"
    path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    for name in (
        "MANTA_URL",
        "MANTA_USER",
        "MANTA_KEY_PATH",
        "MANTA_KEY_ID",
        "MANTA_TIMEOUT",
        "MANTA_LIST_PAGE_SIZE",
        "MANTA_TRACE_HTTP",
        "MANTA_ENABLE_METRICS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def signer(private_key) -> HttpSignatureAuth:
    return HttpSignatureAuth(login=TEST_LOGIN, private_key=private_key)


@pytest.fixture()
def fake_store(private_key) -> FakeMantaAdapter:
    return FakeMantaAdapter(login=TEST_LOGIN, public_key=private_key.public_key())


@pytest.fixture()
def http_session(fake_store):
    session = requests.Session()
    session.mount(TEST_URL, fake_store)
    yield session
    session.close()


@pytest.fixture()
def client(signer, http_session) -> MantaClient:
    return MantaClient(
        url=TEST_URL,
        login=TEST_LOGIN,
        signer=signer,
        session=http_session,
    )


@pytest.fixture()
def test_dir(client) -> str:
    path = f"/{TEST_LOGIN}/stor/{uuid.uuid4()}"
    client.put_directory(path)
    return path
