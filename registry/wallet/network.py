"""
Description of the one chain a session is allowed to run against.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from django.conf import settings


@dataclass(frozen=True)
class NativeCurrency:
    name: str = 'ETH'
    symbol: str = 'ETH'
    decimals: int = 18


@dataclass(frozen=True)
class NetworkDescriptor:
    """Parameters passed to ``wallet_addEthereumChain``.

    ``chain_id`` is kept in the hex form providers report
    (e.g. ``'0x539'``); comparisons go through :meth:`matches` so that
    ``'0x539'``, ``'0X539'`` and ``1337`` are treated alike.
    """
    chain_id: str
    chain_name: str
    rpc_urls: Tuple[str, ...]
    native_currency: NativeCurrency = field(default_factory=NativeCurrency)

    @property
    def chain_id_int(self) -> int:
        return normalize_chain_id(self.chain_id)

    def matches(self, chain_id: Any) -> bool:
        try:
            return normalize_chain_id(chain_id) == self.chain_id_int
        except (TypeError, ValueError):
            return False

    def as_params(self) -> Dict[str, Any]:
        return {
            'chainId': hex(self.chain_id_int),
            'chainName': self.chain_name,
            'nativeCurrency': {
                'name': self.native_currency.name,
                'symbol': self.native_currency.symbol,
                'decimals': self.native_currency.decimals,
            },
            'rpcUrls': list(self.rpc_urls),
        }


def normalize_chain_id(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError('chain id must be a hex string or an integer')
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        return int(text, 16) if text.startswith('0x') else int(text)
    raise TypeError(f'unsupported chain id: {value!r}')


def local_network() -> NetworkDescriptor:
    """Build the expected network from the project settings."""
    return NetworkDescriptor(
        chain_id=settings.CHAIN_ID,
        chain_name=settings.CHAIN_NAME,
        rpc_urls=(settings.RPC_URL,),
        native_currency=NativeCurrency(
            name=settings.CHAIN_CURRENCY_SYMBOL,
            symbol=settings.CHAIN_CURRENCY_SYMBOL,
        ),
    )
