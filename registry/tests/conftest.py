import pytest

from registry.tests.fakes import FakeProvider
from registry.wallet.network import NetworkDescriptor


@pytest.fixture
def network():
    return NetworkDescriptor(chain_id="0x539", chain_name="Localhost 8545", rpc_urls=("http://localhost:8545",))


@pytest.fixture
def make_provider():
    return FakeProvider
