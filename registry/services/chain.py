"""
Calls into the BloodDonation contract through a session's handle.

Form data is validated with the same rules the donation and request
forms apply before a transaction is sent; reads mirror what the
dashboard shows (totals and per blood type volumes).
"""
import logging
from typing import Any, Optional

from rest_framework import serializers

from registry.models import BLOOD_TYPES
from registry.serializers.blood_request import BloodRequestFormSerializer
from registry.serializers.donation import DONATION_AMOUNT, DonationFormSerializer
from registry.wallet.contract import ContractHandle
from registry.wallet.errors import (
    USER_REJECTED_CODE,
    StaleContractHandle,
    TransactionFailed,
    TransactionRejected,
    WalletError,
)

logger = logging.getLogger(__name__)


class FormInvalid(WalletError):
    default_message = 'Invalid form data'


def _rpc_error_code(exc: Exception) -> Optional[int]:
    response = getattr(exc, 'rpc_response', None)
    if isinstance(response, dict) and isinstance(response.get('error'), dict):
        return response['error'].get('code')
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0].get('code')
    return getattr(exc, 'code', None)


def _validated(serializer_class, data):
    s = serializer_class(data=data)
    try:
        s.is_valid(raise_exception=True)
    except serializers.ValidationError as exc:
        # report the first failing field, as the forms do
        first = next(iter(exc.detail.values()))
        raise FormInvalid(str(first[0]) if isinstance(first, list) else str(first)) from exc
    return s.validated_data


def _require(handle: Optional[ContractHandle]) -> ContractHandle:
    if handle is None:
        raise TransactionFailed('Please connect your wallet first')
    return handle


async def send_transaction(handle: ContractHandle, method: str, *args: Any):
    """Send ``method`` and wait for the receipt, translating wallet errors."""
    try:
        return await handle.transact(method, *args)
    except StaleContractHandle:
        raise
    except Exception as exc:
        if _rpc_error_code(exc) == USER_REJECTED_CODE:
            raise TransactionRejected() from exc
        logger.warning('%s failed: %s', method, exc)
        raise TransactionFailed(f'Transaction failed: {exc}') from exc


async def submit_donation(handle: Optional[ContractHandle], data: dict):
    form = _validated(DonationFormSerializer, data)
    return await send_transaction(
        _require(handle), 'donate',
        form['bloodType'], DONATION_AMOUNT, form['donorName'], form['age'], form['contact'],
    )


async def submit_blood_request(handle: Optional[ContractHandle], data: dict):
    form = _validated(BloodRequestFormSerializer, data)
    total_amount = form['units'] * DONATION_AMOUNT
    return await send_transaction(
        _require(handle), 'requestBlood',
        form['bloodType'], total_amount, form['recipientName'], form['age'],
        form['contact'], form['hospital'], form['reason'],
    )


async def fetch_stats(handle: ContractHandle):
    return {
        'totalDonors': int(await handle.call('getTotalDonors')),
        'totalDonations': int(await handle.call('getTotalDonations')),
        'totalRequests': int(await handle.call('getTotalRequests')),
    }


async def fetch_inventory(handle: ContractHandle):
    """On-chain volume per blood type; a type that fails to load reads as 0."""
    data = []
    for blood_type in BLOOD_TYPES:
        try:
            quantity = int(await handle.call('getBloodTypeQuantity', blood_type))
        except StaleContractHandle:
            raise
        except Exception as exc:
            logger.warning('getBloodTypeQuantity(%s) failed: %s', blood_type, exc)
            quantity = 0
        data.append({'bloodType': blood_type, 'quantity': quantity})
    return data
