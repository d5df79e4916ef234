"""
Tests for the remote and local signers.
"""
import pytest
import requests
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from contractflow_sdk.exceptions import SigningError
from contractflow_sdk.signer import LocalSigner, RemoteSigner
from tests.test_helpers import TEST_KEYS_URL

ADDRESS = "37236DF251AB70022B1DA351F08A20FB52443E37"


@pytest.fixture
def remote():
    return RemoteSigner(TEST_KEYS_URL)


def test_remote_sign(remote, requests_mock):
    mock = requests_mock.post(f"{TEST_KEYS_URL}/sign", json={"Response": "5A1C", "Error": ""})
    assert remote.sign("7B7D", ADDRESS) == "5A1C"
    assert mock.last_request.json() == {"msg": "7B7D", "addr": ADDRESS}


def test_remote_public_key(remote, requests_mock):
    mock = requests_mock.post(f"{TEST_KEYS_URL}/pub", json={"Response": "F00D", "Error": ""})
    assert remote.public_key(ADDRESS) == "F00D"
    assert mock.last_request.json() == {"addr": ADDRESS}


def test_remote_sign_daemon_error(remote, requests_mock):
    requests_mock.post(f"{TEST_KEYS_URL}/sign", json={"Response": "", "Error": "unknown address"})
    with pytest.raises(SigningError, match="unknown address"):
        remote.sign("7B7D", ADDRESS)


def test_remote_sign_missing_response(remote, requests_mock):
    requests_mock.post(f"{TEST_KEYS_URL}/sign", json={})
    with pytest.raises(SigningError, match="Missing Response"):
        remote.sign("7B7D", ADDRESS)


def test_remote_sign_unreachable(remote, requests_mock):
    requests_mock.post(f"{TEST_KEYS_URL}/sign", exc=requests.ConnectionError("refused"))
    with pytest.raises(SigningError, match="/sign"):
        remote.sign("7B7D", ADDRESS)


def test_local_signer_signature_verifies():
    signer = LocalSigner()
    message = b'{"chain_id":"mychain"}'

    signature = signer.sign(message.hex().upper(), signer.address)
    pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(signer.public_key(signer.address)))

    pub.verify(bytes.fromhex(signature), message)
    assert len(signer.address) == 40


def test_local_signer_is_deterministic():
    signer = LocalSigner()
    assert signer.sign("7B7D", signer.address) == signer.sign("7b7d", signer.address.lower())


def test_local_signer_unknown_address():
    with pytest.raises(SigningError, match="No key"):
        LocalSigner().sign("7B7D", ADDRESS)


def test_local_signer_bad_hex():
    signer = LocalSigner()
    with pytest.raises(SigningError, match="hex"):
        signer.sign("xyz", signer.address)
