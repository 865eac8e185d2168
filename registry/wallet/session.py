"""
Wallet session manager.

Owns the handshake with the injected provider, verifies the chain the
wallet is on, and builds the contract handle the rest of the system
uses.  All work runs through a single inbox drained by one worker task:
user calls to :meth:`SessionManager.connect` and provider notifications
(``accountsChanged``/``chainChanged``) are messages on the same queue,
so they are applied one at a time and in arrival order.

States::

    UNINITIALIZED -> CHECKING -> {DISCONNECTED, WRONG_NETWORK, CONNECTED}

``connect()`` never raises; failures are reported through
``Session.network_error`` and a ``False`` return value.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, List, Optional, Union

from django.conf import settings

from .contract import ContractHandle, build_contract_handle, load_abi
from .errors import (
    ChainNotAdded,
    GenericConnectFailure,
    NetworkSwitchFailed,
    NoWalletInstalled,
    WalletError,
    WrongNetwork,
)
from .network import NetworkDescriptor, local_network
from .provider import ACCOUNTS_CHANGED, CHAIN_CHANGED, InjectedProvider

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = 'uninitialized'
    CHECKING = 'checking'
    DISCONNECTED = 'disconnected'
    WRONG_NETWORK = 'wrong_network'
    CONNECTED = 'connected'


@dataclass(frozen=True)
class Session:
    """Immutable snapshot published to subscribers."""
    account: Optional[str] = None
    contract: Optional[ContractHandle] = None
    network_error: Optional[str] = None
    is_metamask_installed: bool = False
    state: SessionState = SessionState.UNINITIALIZED
    chain_id: Optional[str] = None

    @property
    def is_connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    def as_dict(self) -> dict:
        return {
            'account': self.account,
            'contract': self.contract.address if self.contract is not None else None,
            'networkError': self.network_error,
            'isMetaMaskInstalled': self.is_metamask_installed,
            'state': self.state.value,
            'chainId': self.chain_id,
        }


@dataclass
class _Initialize:
    pass


@dataclass
class _Connect:
    future: 'asyncio.Future[bool]'
    force_new_account: bool = False
    epoch: int = 0


@dataclass
class _AccountsChanged:
    accounts: List[str]


@dataclass
class _ChainChanged:
    chain_id: Any


Subscriber = Callable[[Session], Any]
ReloadHook = Callable[[], Union[None, Awaitable[None]]]


class SessionManager:
    """The single owner of a page's wallet :class:`Session`."""

    def __init__(
        self,
        provider: Optional[InjectedProvider],
        network: NetworkDescriptor,
        *,
        contract_address: Optional[str] = None,
        abi: Optional[List[dict]] = None,
        reload: Optional[ReloadHook] = None,
    ):
        self._provider = provider
        self._network = network
        self._contract_address = contract_address
        self._abi = abi
        self._reload = reload
        self._session = Session()
        self._subscribers: List[Subscriber] = []
        self._inbox: Deque[Any] = deque()
        self._worker: Optional[asyncio.Task] = None
        self._connecting: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._mounted = False
        # bumped by disconnect/unmount so a connect that finishes later is discarded
        self._epoch = 0

    @classmethod
    def from_settings(cls, provider: Optional[InjectedProvider], **kwargs) -> 'SessionManager':
        kwargs.setdefault('contract_address', settings.CONTRACT_ADDRESS or None)
        return cls(provider, local_network(), **kwargs)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------
    def get_session(self) -> Session:
        return self._session

    @property
    def network(self) -> NetworkDescriptor:
        return self._network

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for every new snapshot; returns the unsubscribe."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def mount(self) -> Session:
        """Register provider listeners and run the initial wallet check."""
        if self._mounted:
            return self._session
        self._loop = asyncio.get_running_loop()
        self._mounted = True
        if self._provider is not None:
            self._provider.on(ACCOUNTS_CHANGED, self._on_accounts_changed)
            self._provider.on(CHAIN_CHANGED, self._on_chain_changed)
        self._enqueue(_Initialize())
        await self.settle()
        return self._session

    async def unmount(self) -> None:
        """Release the provider listeners and abandon queued work."""
        if not self._mounted:
            return
        self._mounted = False
        self._epoch += 1
        if self._provider is not None:
            self._provider.off(ACCOUNTS_CHANGED, self._on_accounts_changed)
            self._provider.off(CHAIN_CHANGED, self._on_chain_changed)
        pending = list(self._inbox)
        self._inbox.clear()
        worker, self._worker = self._worker, None
        # the reload hook and subscribers run on the worker
        if worker is not None and not worker.done() and worker is not asyncio.current_task():
            worker.cancel()
            await asyncio.wait([worker])
        for message in pending:
            if isinstance(message, _Connect) and not message.future.done():
                message.future.set_result(False)
        if self._connecting is not None and not self._connecting.done():
            self._connecting.set_result(False)
        self._connecting = None
        self._publish(state=SessionState.DISCONNECTED, account=None, contract=None)

    @asynccontextmanager
    async def mounted(self):
        await self.mount()
        try:
            yield self
        finally:
            await self.unmount()

    async def connect(self, force_new_account: bool = False) -> bool:
        """Connect the wallet; concurrent callers share one attempt."""
        if self._session.is_connected and not force_new_account:
            return True
        if self._connecting is not None:
            return await asyncio.shield(self._connecting)
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        future = self._loop.create_future()
        self._connecting = future
        self._enqueue(_Connect(future, force_new_account, self._epoch))
        return await asyncio.shield(future)

    def disconnect(self) -> Session:
        self._epoch += 1
        self._publish(
            state=SessionState.DISCONNECTED, account=None, contract=None, network_error=None,
        )
        logger.info('wallet disconnected')
        return self._session

    async def settle(self) -> None:
        """Wait until every queued notification has been applied."""
        await asyncio.sleep(0)
        while self._worker is not None and not self._worker.done():
            await asyncio.wait([self._worker])
            await asyncio.sleep(0)

    # ------------------------------------------------------------------
    # Provider notifications
    # ------------------------------------------------------------------
    def _on_accounts_changed(self, accounts: Optional[List[str]]) -> None:
        self._post(_AccountsChanged(list(accounts or [])))

    def _on_chain_changed(self, chain_id: Any) -> None:
        # a connect verified against the old chain must not publish its handle
        self._epoch += 1
        current = self._session.contract
        if current is not None:
            current.invalidate()
        self._post(_ChainChanged(chain_id))

    def _post(self, message: Any) -> None:
        if not self._mounted or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._enqueue, message)

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------
    def _enqueue(self, message: Any) -> None:
        self._inbox.append(message)
        if self._worker is None or self._worker.done():
            self._worker = self._loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._inbox:
            message = self._inbox.popleft()
            try:
                await self._dispatch(message)
            except Exception:
                logger.exception('failed to process %s', type(message).__name__)

    async def _dispatch(self, message: Any) -> None:
        if isinstance(message, _Connect):
            result = False
            try:
                if message.epoch != self._epoch:
                    logger.info('connect requested before a reset; dropping it')
                elif self._session.is_connected and not message.force_new_account:
                    result = True
                else:
                    result = await self._connect_flow(message.force_new_account, message.epoch)
            finally:
                if self._connecting is message.future:
                    self._connecting = None
                if not message.future.done():
                    message.future.set_result(result)
        elif isinstance(message, _AccountsChanged):
            await self._accounts_changed(message.accounts)
        elif isinstance(message, _ChainChanged):
            await self._chain_changed(message.chain_id)
        elif isinstance(message, _Initialize):
            await self._initialize()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _publish(self, **changes: Any) -> None:
        session = replace(self._session, **changes)
        if session.contract is not None and (
            session.account is None
            or not session.contract.is_valid
            or not self._network.matches(session.chain_id)
        ):
            logger.warning('contract handle without a verified account/chain; resetting session')
            session = replace(session, account=None, contract=None, state=SessionState.DISCONNECTED)
        previous = self._session
        if previous.contract is not None and previous.contract is not session.contract:
            previous.contract.invalidate()
        self._session = session
        if previous.state is not session.state:
            logger.info('wallet session %s -> %s', previous.state.value, session.state.value)
        for callback in list(self._subscribers):
            try:
                callback(session)
            except Exception:
                logger.exception('session subscriber %r failed', callback)

    async def _initialize(self) -> None:
        self._publish(state=SessionState.CHECKING, network_error=None)
        if self._provider is None:
            self._publish(
                state=SessionState.DISCONNECTED,
                is_metamask_installed=False,
                network_error=NoWalletInstalled().message,
            )
            return
        self._publish(is_metamask_installed=True)
        try:
            chain_id = await self._provider.get_chain_id()
            accounts = await self._provider.get_accounts()
        except Exception as exc:
            logger.warning('initial wallet check failed: %s', exc)
            self._publish(state=SessionState.DISCONNECTED, network_error=f'Failed to connect: {exc}')
            return
        if self._network.matches(chain_id):
            self._publish(state=SessionState.DISCONNECTED, chain_id=chain_id)
        else:
            self._publish(
                state=SessionState.WRONG_NETWORK, chain_id=chain_id, network_error=WrongNetwork().message,
            )
        if accounts:
            await self._connect_flow()

    async def _ensure_network(self, provider: InjectedProvider) -> Any:
        chain_id = await provider.get_chain_id()
        if self._network.matches(chain_id):
            return chain_id
        self._publish(state=SessionState.WRONG_NETWORK, chain_id=chain_id, network_error=WrongNetwork().message)
        logger.info('wallet on chain %s, expected %s; switching', chain_id, self._network.chain_id)
        try:
            await provider.switch_chain(hex(self._network.chain_id_int))
        except ChainNotAdded:
            try:
                await provider.add_chain(self._network)
            except Exception as exc:
                raise NetworkSwitchFailed('Failed to add local network. Please try again.') from exc
        except Exception as exc:
            raise NetworkSwitchFailed() from exc
        chain_id = await provider.get_chain_id()
        if not self._network.matches(chain_id):
            raise WrongNetwork()
        self._publish(state=SessionState.CHECKING, chain_id=chain_id, network_error=None)
        return chain_id

    async def _connect_flow(self, force_new_account: bool = False, epoch: Optional[int] = None) -> bool:
        if epoch is None:
            epoch = self._epoch
        provider = self._provider
        if provider is None:
            self._publish(
                state=SessionState.DISCONNECTED,
                account=None,
                contract=None,
                is_metamask_installed=False,
                network_error=NoWalletInstalled().message,
            )
            return False
        # re-selecting an account keeps the working connection until a new handle exists
        kept = self._session.contract if force_new_account and self._session.is_connected else None
        if kept is not None:
            self._publish(network_error=None)
        else:
            self._publish(
                state=SessionState.CHECKING, account=None, contract=None,
                is_metamask_installed=True, network_error=None,
            )
        try:
            chain_id = await self._ensure_network(provider)
            if force_new_account:
                accounts = await provider.request_permissions()
            else:
                accounts = await provider.request_accounts()
            if not accounts:
                raise GenericConnectFailure('Failed to connect: No accounts found')
            signer = await provider.get_signer()
            abi = self._abi if self._abi is not None else load_abi()
            handle = await build_contract_handle(provider, signer, self._contract_address, abi)
        except (WrongNetwork, NetworkSwitchFailed) as exc:
            logger.warning('network check failed: %s', exc)
            return self._connect_failed(epoch, kept, SessionState.WRONG_NETWORK, exc.message)
        except WalletError as exc:
            logger.warning('wallet connect failed: %s', exc)
            return self._connect_failed(epoch, kept, SessionState.DISCONNECTED, exc.message)
        except Exception as exc:
            logger.exception('wallet connect failed')
            failure = GenericConnectFailure(f'Failed to connect: {exc}')
            return self._connect_failed(epoch, kept, SessionState.DISCONNECTED, failure.message)
        if epoch != self._epoch:
            handle.invalidate()
            logger.info('session reset while connecting; discarding %s', accounts[0])
            self._publish(state=SessionState.DISCONNECTED, account=None, contract=None)
            return False
        self._publish(
            state=SessionState.CONNECTED,
            account=accounts[0],
            contract=handle,
            chain_id=chain_id,
            network_error=None,
        )
        return True

    def _connect_failed(
        self, epoch: int, kept: Optional[ContractHandle], state: SessionState, message: str,
    ) -> bool:
        if epoch != self._epoch:
            # disconnect, unmount or a chain change already decided the outcome
            self._publish(state=SessionState.DISCONNECTED, account=None, contract=None)
        elif kept is not None and self._session.contract is kept and kept.is_valid:
            self._publish(network_error=message)
        else:
            self._publish(state=state, account=None, contract=None, network_error=message)
        return False

    async def _accounts_changed(self, accounts: List[str]) -> None:
        if not accounts:
            self._publish(state=SessionState.DISCONNECTED, account=None, contract=None, network_error=None)
            logger.info('wallet disconnected by provider')
            return
        if not self._session.is_connected:
            return
        if self._session.account and self._session.account.lower() == accounts[0].lower():
            return
        await self._connect_flow()

    async def _chain_changed(self, chain_id: Any) -> None:
        logger.info('chain changed to %s; reloading wallet session', chain_id)
        self._publish(state=SessionState.DISCONNECTED, account=None, contract=None, chain_id=None)
        if self._reload is None:
            await self._initialize()
            return
        result = self._reload()
        if inspect.isawaitable(result):
            await result
