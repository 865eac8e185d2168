import asyncio
import random
from unittest.mock import AsyncMock

import pytest

from registry.tests.fakes import ACCOUNT, CONTRACT_ADDRESS, OTHER_ACCOUNT
from registry.wallet.errors import ChainNotAdded, ProviderRPCError, UserRejected
from registry.wallet.network import NetworkDescriptor
from registry.wallet.provider import ACCOUNTS_CHANGED, CHAIN_CHANGED
from registry.wallet.session import SessionManager, SessionState

pytestmark = pytest.mark.asyncio


def _manager(provider, network, **kwargs):
    kwargs.setdefault('contract_address', CONTRACT_ADDRESS)
    kwargs.setdefault('abi', [])
    return SessionManager(provider, network, **kwargs)


async def _wait_for_call(provider, name, rounds=100):
    for _ in range(rounds):
        if name in provider.calls:
            return
        await asyncio.sleep(0)
    raise AssertionError(f'{name} was never called')


def _unverified_handle(manager, session):
    if session.contract is None:
        return False
    return (
        session.account is None
        or not session.contract.is_valid
        or not manager.network.matches(session.chain_id)
    )


async def test_connect_on_expected_chain(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is True
        session = manager.get_session()
        assert session.state is SessionState.CONNECTED
        assert session.account == ACCOUNT
        assert session.contract.address == CONTRACT_ADDRESS
        assert session.network_error is None
        assert session.is_metamask_installed
        assert 'switch_chain' not in provider.calls


async def test_mount_without_authorized_accounts_stays_disconnected(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        session = manager.get_session()
        assert session.state is SessionState.DISCONNECTED
        assert session.contract is None
        assert 'request_accounts' not in provider.calls


async def test_mount_reconnects_already_authorized_wallet(make_provider, network):
    provider = make_provider(authorized=(ACCOUNT,))
    manager = _manager(provider, network)
    async with manager.mounted():
        assert manager.get_session().state is SessionState.CONNECTED


async def test_mount_on_other_chain_reports_wrong_network(make_provider, network):
    provider = make_provider(chain_id='0x1')
    manager = _manager(provider, network)
    async with manager.mounted():
        session = manager.get_session()
        assert session.state is SessionState.WRONG_NETWORK
        assert session.chain_id == '0x1'
        assert session.network_error


async def test_switch_happens_before_accounts_are_requested(make_provider):
    network = NetworkDescriptor(chain_id='0x7A69', chain_name='Hardhat', rpc_urls=('http://localhost:8545',))
    provider = make_provider(chain_id='0x1')
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is True
        assert provider.chain_id == '0x7a69'
        assert provider.calls.index('switch_chain') < provider.calls.index('request_accounts')
        assert manager.get_session().state is SessionState.CONNECTED


async def test_unknown_chain_is_added_then_connected(make_provider, network):
    provider = make_provider(chain_id='0x1', switch_error=ChainNotAdded(code=4902))
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is True
        assert 'add_chain' in provider.calls
        assert manager.get_session().state is SessionState.CONNECTED


async def test_failed_add_chain_is_wrong_network(make_provider, network):
    provider = make_provider(
        chain_id='0x1', switch_error=ChainNotAdded(code=4902), add_error=ProviderRPCError('nope'),
    )
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is False
        session = manager.get_session()
        assert session.state is SessionState.WRONG_NETWORK
        assert session.network_error == 'Failed to add local network. Please try again.'
        assert session.contract is None


async def test_failed_switch_never_requests_accounts(make_provider, network):
    provider = make_provider(chain_id='0x1', switch_error=ProviderRPCError('switch refused'))
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is False
        session = manager.get_session()
        assert session.state is SessionState.WRONG_NETWORK
        assert session.network_error == 'Failed to switch network. Please try again.'
        assert 'request_accounts' not in provider.calls


async def test_rejected_request_is_reported(make_provider, network):
    provider = make_provider(request_error=UserRejected(code=4001))
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is False
        session = manager.get_session()
        assert session.state is SessionState.DISCONNECTED
        assert session.network_error == 'Connection rejected. Please try again.'


async def test_empty_account_list_fails(make_provider, network):
    provider = make_provider(accounts=())
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is False
        assert 'No accounts found' in manager.get_session().network_error


async def test_missing_contract_address(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network, contract_address=None)
    async with manager.mounted():
        assert await manager.connect() is False
        session = manager.get_session()
        assert session.network_error == 'Contract address not found'
        assert session.contract is None


async def test_contract_without_code_is_not_deployed(make_provider, network):
    provider = make_provider(code='0x')
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is False
        session = manager.get_session()
        assert session.state is SessionState.DISCONNECTED
        assert 'not deployed' in session.network_error
        assert session.contract is None


async def test_unexpected_error_is_generic_failure(make_provider, network):
    provider = make_provider(request_error=RuntimeError('boom'))
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is False
        assert manager.get_session().network_error == 'Failed to connect: boom'


async def test_no_wallet_installed(network):
    manager = _manager(None, network)
    async with manager.mounted():
        session = manager.get_session()
        assert session.is_metamask_installed is False
        assert session.state is SessionState.DISCONNECTED
        assert await manager.connect() is False
        assert manager.get_session().network_error


async def test_connect_is_idempotent(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        assert await manager.connect() is True
        first = manager.get_session().contract
        assert await manager.connect() is True
        assert provider.calls.count('request_accounts') == 1
        assert manager.get_session().contract is first


async def test_concurrent_connects_share_one_attempt(make_provider, network):
    gate = asyncio.Event()
    provider = make_provider(gate=gate)
    manager = _manager(provider, network)
    async with manager.mounted():
        first = asyncio.ensure_future(manager.connect())
        second = asyncio.ensure_future(manager.connect())
        await _wait_for_call(provider, 'request_accounts')
        gate.set()
        assert await asyncio.gather(first, second) == [True, True]
        assert provider.calls.count('request_accounts') == 1


async def test_force_new_account_asks_for_permissions(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        await manager.connect()
        assert await manager.connect(force_new_account=True) is True
        assert 'request_permissions' in provider.calls


async def test_disconnect_clears_session(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        await manager.connect()
        handle = manager.get_session().contract
        session = manager.disconnect()
        assert session.state is SessionState.DISCONNECTED
        assert session.account is None
        assert session.contract is None
        assert session.network_error is None
        assert not handle.is_valid


async def test_disconnect_while_connecting_discards_result(make_provider, network):
    gate = asyncio.Event()
    provider = make_provider(gate=gate)
    manager = _manager(provider, network)
    async with manager.mounted():
        pending = asyncio.ensure_future(manager.connect())
        await _wait_for_call(provider, 'request_accounts')
        manager.disconnect()
        gate.set()
        assert await pending is False
        assert manager.get_session().state is SessionState.DISCONNECTED
        assert manager.get_session().contract is None


async def test_disconnect_before_queued_connect_runs(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        pending = asyncio.ensure_future(manager.connect())
        await asyncio.sleep(0)
        manager.disconnect()
        assert await pending is False
        assert manager.get_session().state is SessionState.DISCONNECTED
        assert 'request_accounts' not in provider.calls


async def test_rejected_account_reselection_keeps_connection(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        await manager.connect()
        handle = manager.get_session().contract
        states = []
        manager.subscribe(lambda s: states.append(s.state))
        provider.permissions_error = UserRejected(code=4001)
        assert await manager.connect(force_new_account=True) is False
        session = manager.get_session()
        assert session.state is SessionState.CONNECTED
        assert session.account == ACCOUNT
        assert session.contract is handle
        assert handle.is_valid
        assert session.network_error == 'Connection rejected. Please try again.'
        assert SessionState.CHECKING not in states


async def test_empty_accounts_changed_disconnects(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        await manager.connect()
        provider.emit(ACCOUNTS_CHANGED, [])
        await manager.settle()
        session = manager.get_session()
        assert session.state is SessionState.DISCONNECTED
        assert session.account is None
        assert session.contract is None


async def test_accounts_changed_to_new_account_rebinds(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        await manager.connect()
        old = manager.get_session().contract
        provider.accounts = [OTHER_ACCOUNT]
        provider.emit(ACCOUNTS_CHANGED, [OTHER_ACCOUNT])
        await manager.settle()
        session = manager.get_session()
        assert session.account == OTHER_ACCOUNT
        assert session.contract is not old
        assert not old.is_valid


async def test_same_account_notification_is_ignored(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        await manager.connect()
        handle = manager.get_session().contract
        provider.emit(ACCOUNTS_CHANGED, [ACCOUNT.upper().replace('0X', '0x')])
        await manager.settle()
        assert manager.get_session().contract is handle
        assert handle.is_valid


async def test_notification_during_connect_is_applied_afterwards(make_provider, network):
    gate = asyncio.Event()
    provider = make_provider(gate=gate)
    manager = _manager(provider, network)
    async with manager.mounted():
        pending = asyncio.ensure_future(manager.connect())
        await _wait_for_call(provider, 'request_accounts')
        provider.emit(ACCOUNTS_CHANGED, [])
        gate.set()
        assert await pending is True
        await manager.settle()
        assert manager.get_session().state is SessionState.DISCONNECTED


async def test_chain_changed_invalidates_handle_and_reloads(make_provider, network):
    reload = AsyncMock()
    provider = make_provider()
    manager = _manager(provider, network, reload=reload)
    async with manager.mounted():
        await manager.connect()
        handle = manager.get_session().contract
        provider.emit(CHAIN_CHANGED, '0x1')
        assert not handle.is_valid
        await manager.settle()
        reload.assert_awaited_once()
        session = manager.get_session()
        assert session.contract is None
        assert session.state is SessionState.DISCONNECTED


async def test_chain_changed_without_hook_rechecks_wallet(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        await manager.connect()
        old = manager.get_session().contract
        provider.chain_id = '0x1'
        provider.emit(CHAIN_CHANGED, '0x1')
        await manager.settle()
        session = manager.get_session()
        # the wallet is still authorized, so the check switches back and reconnects
        assert session.state is SessionState.CONNECTED
        assert session.contract is not old
        assert provider.chain_id == '0x539'


async def test_chain_change_during_connect_discards_handle(make_provider, network):
    gate = asyncio.Event()
    provider = make_provider(gate=gate)
    manager = _manager(provider, network, reload=AsyncMock())
    published = []
    manager.subscribe(lambda s: published.append((s.state, s.contract is not None and s.contract.is_valid)))
    async with manager.mounted():
        pending = asyncio.ensure_future(manager.connect())
        await _wait_for_call(provider, 'request_accounts')
        seen = len(published)
        provider.emit(CHAIN_CHANGED, '0x1')
        gate.set()
        assert await pending is False
        await manager.settle()
        assert [p for p in published[seen:] if p[1]] == []
        session = manager.get_session()
        assert session.state is SessionState.DISCONNECTED
        assert session.contract is None


async def test_unmount_from_reload_hook_completes(make_provider, network):
    provider = make_provider()
    finished = []

    async def reload():
        await manager.unmount()
        finished.append(True)

    manager = _manager(provider, network, reload=reload)
    await manager.mount()
    await manager.connect()
    provider.emit(CHAIN_CHANGED, '0x1')
    await manager.settle()
    assert finished == [True]
    assert provider.listener_count(CHAIN_CHANGED) == 0
    assert manager.get_session().state is SessionState.DISCONNECTED


async def test_listeners_registered_once_and_released(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    await manager.mount()
    await manager.mount()
    assert provider.listener_count(ACCOUNTS_CHANGED) == 1
    assert provider.listener_count(CHAIN_CHANGED) == 1
    await manager.unmount()
    assert provider.listener_count(ACCOUNTS_CHANGED) == 0
    assert provider.listener_count(CHAIN_CHANGED) == 0


async def test_notifications_after_unmount_are_dropped(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    async with manager.mounted():
        await manager.connect()
    manager._on_accounts_changed([OTHER_ACCOUNT])
    await manager.settle()
    assert manager.get_session().account is None


async def test_subscribers_see_each_snapshot(make_provider, network):
    provider = make_provider()
    manager = _manager(provider, network)
    seen = []
    unsubscribe = manager.subscribe(lambda s: seen.append(s.state))
    manager.subscribe(lambda s: 1 / 0)
    async with manager.mounted():
        await manager.connect()
        assert seen[-1] is SessionState.CONNECTED
        assert SessionState.CHECKING in seen
        unsubscribe()
        count = len(seen)
        manager.disconnect()
        assert len(seen) == count


async def test_handle_only_with_verified_account_and_chain(make_provider, network):
    rng = random.Random(1337)
    provider = make_provider()
    manager = _manager(provider, network)
    violations = []
    manager.subscribe(lambda s: _unverified_handle(manager, s) and violations.append(s))
    async with manager.mounted():
        for _ in range(60):
            step = rng.choice(['connect', 'disconnect', 'accounts', 'empty', 'chain', 'switch'])
            if step == 'connect':
                await manager.connect(force_new_account=rng.random() < 0.2)
            elif step == 'disconnect':
                manager.disconnect()
            elif step == 'accounts':
                provider.accounts = [rng.choice([ACCOUNT, OTHER_ACCOUNT])]
                provider.emit(ACCOUNTS_CHANGED, list(provider.accounts))
            elif step == 'empty':
                provider.emit(ACCOUNTS_CHANGED, [])
            elif step == 'chain':
                provider.chain_id = rng.choice(['0x1', '0x539'])
                provider.emit(CHAIN_CHANGED, provider.chain_id)
            else:
                provider.switch_error = rng.choice([None, ProviderRPCError('busy')])
            await manager.settle()
            assert not _unverified_handle(manager, manager.get_session())
    assert violations == []
