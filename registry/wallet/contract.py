"""
Typed binding of the BloodDonation contract to a signer.

A :class:`ContractHandle` is built once per (address, ABI, signer)
triple and never rebound.  When the session's account or chain changes
the manager calls :meth:`ContractHandle.invalidate`; any later use
raises :class:`StaleContractHandle`.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from django.conf import settings
from web3 import AsyncWeb3

from .errors import ContractAddressMissing, ContractNotDeployed, StaleContractHandle
from .provider import InjectedProvider, Signer

logger = logging.getLogger(__name__)

EMPTY_CODE = {'', '0x', '0x0'}


def load_abi(artifact_path: Optional[str] = None) -> List[dict]:
    """Read the ABI from a Hardhat artifact (``{"abi": [...]}``) or a bare list."""
    path = Path(artifact_path or settings.CONTRACT_ARTIFACT)
    data = json.loads(path.read_text(encoding='utf-8'))
    return data['abi'] if isinstance(data, dict) else data


def is_empty_code(code: Any) -> bool:
    if code is None:
        return True
    if isinstance(code, (bytes, bytearray)):
        return len(code) == 0
    return str(code).strip().lower() in EMPTY_CODE


class ContractHandle:
    """Capability for invoking BloodDonation methods as ``signer``."""

    def __init__(self, address: str, abi: List[dict], signer: Signer):
        self.address = address
        self.abi = abi
        self.signer = signer
        self._valid = True
        self._bound = None

    def __repr__(self) -> str:
        state = 'valid' if self._valid else 'stale'
        return f'<ContractHandle {self.address} as {self.signer.address} ({state})>'

    @property
    def is_valid(self) -> bool:
        return self._valid

    def invalidate(self) -> None:
        self._valid = False
        self._bound = None

    def _ensure_valid(self) -> None:
        if not self._valid:
            raise StaleContractHandle()

    @property
    def contract(self):
        """The underlying web3 contract object."""
        self._ensure_valid()
        if self._bound is None:
            if self.signer.web3 is None:
                raise StaleContractHandle('Signer has no web3 connection')
            self._bound = self.signer.web3.eth.contract(
                address=AsyncWeb3.to_checksum_address(self.address), abi=self.abi,
            )
        return self._bound

    async def call(self, name: str, *args: Any) -> Any:
        return await self.contract.functions[name](*args).call({'from': self.signer.address})

    async def transact(self, name: str, *args: Any) -> Any:
        """Send a transaction and wait for its receipt."""
        tx_hash = await self.contract.functions[name](*args).transact({'from': self.signer.address})
        logger.info('%s sent as %s: %s', name, self.signer.address, tx_hash.hex())
        return await self.signer.web3.eth.wait_for_transaction_receipt(tx_hash)


async def build_contract_handle(
    provider: InjectedProvider,
    signer: Signer,
    address: Optional[str],
    abi: List[dict],
) -> ContractHandle:
    """Bind the contract and confirm there is bytecode at ``address``."""
    if not address:
        raise ContractAddressMissing()
    handle = ContractHandle(address, abi, signer)
    code = await provider.get_code(address)
    if is_empty_code(code):
        handle.invalidate()
        raise ContractNotDeployed(f'Contract not deployed at {address}')
    return handle
