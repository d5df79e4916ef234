"""
Pytest fixtures for the contractflow SDK tests.
"""
import time

import pytest

from contractflow_sdk import ClientConfig, ContractClient, ContractRegistry
from contractflow_sdk._rate_limited_log import reset_rate_limits
from contractflow_sdk.signer import LocalSigner

from tests.test_helpers import (
    ADD_ABI, FakeChain, FakeKeysDaemon, TEST_CHAIN_ID, TEST_COMPILER_URL,
    TEST_KEYS_URL, TEST_NODE_URL, register_compile_service
)


# Make time.sleep instantaneous so transport retries don't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def add_abi():
    return [dict(entry) for entry in ADD_ABI]


@pytest.fixture
def local_signer():
    return LocalSigner()


@pytest.fixture
def registry(tmp_path):
    return ContractRegistry(str(tmp_path / "contracts"))


@pytest.fixture
def fake_chain(requests_mock):
    return FakeChain(requests_mock)


@pytest.fixture
def keys_daemon(requests_mock, local_signer):
    return FakeKeysDaemon(requests_mock, local_signer)


@pytest.fixture
def compile_service(requests_mock):
    return register_compile_service(requests_mock)


@pytest.fixture
def config(tmp_path):
    return ClientConfig(
        chain_id=TEST_CHAIN_ID,
        node_url=TEST_NODE_URL,
        keys_url=TEST_KEYS_URL,
        compiler_url=TEST_COMPILER_URL,
        registry_dir=str(tmp_path / "contracts"),
        poll_interval=0.01,
        confirmation_timeout=1.0,
    )


@pytest.fixture
def client(config, fake_chain, keys_daemon, compile_service):
    """ContractClient wired to the fake node, keys daemon and compile service"""
    return ContractClient(config)
