"""
Failure conditions raised while establishing a wallet session.

Every class carries the human readable message that ends up in the
session's ``network_error`` field.  The session manager catches all of
them; none of these escape to callers of ``connect()``.
"""
from __future__ import annotations

from typing import Optional

# EIP-1193 / MetaMask provider error codes
USER_REJECTED_CODE = 4001
UNRECOGNIZED_CHAIN_CODE = 4902


class WalletError(Exception):
    """Base class for every wallet session failure."""

    default_message = 'Wallet operation failed'

    def __init__(self, message: Optional[str] = None, *, code: Optional[int] = None):
        super().__init__(message or self.default_message)
        self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ProviderRPCError(WalletError):
    """An error object returned by the injected provider."""

    default_message = 'Provider request failed'


class NoWalletInstalled(WalletError):
    default_message = 'MetaMask is not installed. Please install MetaMask to continue.'


class UserRejected(WalletError):
    default_message = 'Connection rejected. Please try again.'


class WrongNetwork(WalletError):
    default_message = 'Please connect to the local blockchain network.'


class ChainNotAdded(WalletError):
    """The wallet does not know the requested chain (code 4902)."""

    default_message = 'Network has not been added to the wallet'


class NetworkSwitchFailed(WalletError):
    default_message = 'Failed to switch network. Please try again.'


class ContractAddressMissing(WalletError):
    default_message = 'Contract address not found'


class ContractNotDeployed(WalletError):
    default_message = 'Contract not deployed'


class StaleContractHandle(WalletError):
    """Raised when a handle is used after its account or chain changed."""

    default_message = 'Contract handle is no longer valid; reconnect the wallet'


class TransactionRejected(WalletError):
    default_message = 'Transaction rejected by user'


class TransactionFailed(WalletError):
    default_message = 'Transaction failed'


class GenericConnectFailure(WalletError):
    default_message = 'Failed to connect wallet'


def from_rpc_error(code: Optional[int], message: str) -> WalletError:
    """Map a provider error payload onto the session taxonomy."""
    if code == USER_REJECTED_CODE:
        return UserRejected(code=code)
    if code == UNRECOGNIZED_CHAIN_CODE:
        return ChainNotAdded(message or None, code=code)
    return ProviderRPCError(message or None, code=code)
