"""
Injected provider capability consumed by the session manager.

:class:`InjectedProvider` is the narrow surface the session manager
talks to.  :class:`Eip1193Provider` implements it on top of a single
``request(method, params)`` call, which is what a browser wallet
(``window.ethereum``) or a JSON-RPC node exposes.
:class:`Web3Provider` routes those requests through web3.py.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3

from .errors import GenericConnectFailure, ProviderRPCError, from_rpc_error
from .network import NetworkDescriptor

logger = logging.getLogger(__name__)

ACCOUNTS_CHANGED = 'accountsChanged'
CHAIN_CHANGED = 'chainChanged'

ETH_REQUEST_ACCOUNTS = 'eth_requestAccounts'
ETH_ACCOUNTS = 'eth_accounts'
ETH_CHAIN_ID = 'eth_chainId'
ETH_GET_CODE = 'eth_getCode'
WALLET_SWITCH_CHAIN = 'wallet_switchEthereumChain'
WALLET_ADD_CHAIN = 'wallet_addEthereumChain'
WALLET_REQUEST_PERMISSIONS = 'wallet_requestPermissions'


@dataclass(frozen=True)
class Signer:
    """An account able to send transactions through ``web3``."""
    address: str
    web3: Optional[AsyncWeb3] = None


class InjectedProvider(ABC):
    """Wallet capability object plus its event listener registry."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Callable[[Any], Any]]] = {}

    @abstractmethod
    async def request_accounts(self) -> List[str]:
        """Prompt the user for account access."""

    @abstractmethod
    async def get_accounts(self) -> List[str]:
        """Accounts already authorized for this origin (never prompts)."""

    @abstractmethod
    async def request_permissions(self) -> List[str]:
        """Re-prompt for account selection and return the chosen accounts."""

    @abstractmethod
    async def get_chain_id(self) -> str:
        ...

    @abstractmethod
    async def switch_chain(self, chain_id: str) -> None:
        ...

    @abstractmethod
    async def add_chain(self, network: NetworkDescriptor) -> None:
        ...

    @abstractmethod
    async def get_signer(self) -> Signer:
        ...

    @abstractmethod
    async def get_code(self, address: str) -> Any:
        ...

    def on(self, event: str, handler: Callable[[Any], Any]) -> None:
        self._listeners.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Callable[[Any], Any]) -> None:
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, payload: Any) -> None:
        """Deliver a provider notification to every registered handler."""
        for handler in list(self._listeners.get(event, [])):
            handler(payload)


class Eip1193Provider(InjectedProvider):
    """Capability methods expressed as EIP-1193 ``request`` calls."""

    def __init__(self, web3: Optional[AsyncWeb3] = None) -> None:
        super().__init__()
        self.web3 = web3

    @abstractmethod
    async def request(self, method: str, params: Optional[list] = None) -> Any:
        """Send one JSON-RPC request; raise a ``WalletError`` on failure."""

    async def request_accounts(self) -> List[str]:
        return list(await self.request(ETH_REQUEST_ACCOUNTS) or [])

    async def get_accounts(self) -> List[str]:
        return list(await self.request(ETH_ACCOUNTS) or [])

    async def request_permissions(self) -> List[str]:
        permissions = await self.request(WALLET_REQUEST_PERMISSIONS, [{'eth_accounts': {}}]) or []
        for permission in permissions:
            if permission.get('parentCapability') != 'eth_accounts':
                continue
            caveats = permission.get('caveats') or []
            if caveats:
                return list(caveats[0].get('value') or [])
        return await self.get_accounts()

    async def get_chain_id(self) -> str:
        return await self.request(ETH_CHAIN_ID)

    async def switch_chain(self, chain_id: str) -> None:
        await self.request(WALLET_SWITCH_CHAIN, [{'chainId': chain_id}])

    async def add_chain(self, network: NetworkDescriptor) -> None:
        await self.request(WALLET_ADD_CHAIN, [network.as_params()])

    async def get_signer(self) -> Signer:
        accounts = await self.get_accounts()
        if not accounts:
            raise GenericConnectFailure('No accounts found')
        return Signer(address=accounts[0], web3=self.web3)

    async def get_code(self, address: str) -> Any:
        return await self.request(ETH_GET_CODE, [address, 'latest'])


class Web3Provider(Eip1193Provider):
    """EIP-1193 requests sent through a web3.py async provider."""

    def __init__(self, web3: AsyncWeb3) -> None:
        super().__init__(web3)

    @classmethod
    def from_url(cls, rpc_url: str) -> 'Web3Provider':
        return cls(AsyncWeb3(AsyncHTTPProvider(rpc_url)))

    async def request(self, method: str, params: Optional[list] = None) -> Any:
        logger.debug('rpc %s %s', method, params)
        try:
            response = await self.web3.provider.make_request(method, params or [])
        except (OSError, ValueError) as exc:
            raise ProviderRPCError(f'{method} failed: {exc}') from exc
        error = response.get('error')
        if error:
            if isinstance(error, dict):
                raise from_rpc_error(error.get('code'), error.get('message', ''))
            raise ProviderRPCError(str(error))
        return response.get('result')
