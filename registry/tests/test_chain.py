from unittest.mock import AsyncMock, MagicMock

import pytest

from registry.services.chain import (
    FormInvalid,
    fetch_inventory,
    fetch_stats,
    submit_blood_request,
    submit_donation,
)
from registry.wallet.errors import StaleContractHandle, TransactionFailed, TransactionRejected

pytestmark = pytest.mark.asyncio

DONATION_FORM = {"bloodType": "O+", "donorName": "Alice", "age": 30, "contact": "5551234567"}
REQUEST_FORM = {
    "bloodType": "A-",
    "units": 2,
    "recipientName": "Bob",
    "age": 54,
    "contact": "5559876543",
    "hospital": "City Hospital",
    "reason": "Surgery",
}


def _handle(**methods):
    handle = MagicMock()
    handle.transact = methods.get("transact", AsyncMock(return_value={"status": 1}))
    handle.call = methods.get("call", AsyncMock(return_value=0))
    return handle


async def test_donation_sends_fixed_volume():
    handle = _handle()
    receipt = await submit_donation(handle, DONATION_FORM)
    assert receipt == {"status": 1}
    handle.transact.assert_awaited_once_with("donate", "O+", 450, "Alice", 30, "5551234567")


async def test_donation_form_errors_are_reported_before_sending():
    handle = _handle()
    with pytest.raises(FormInvalid) as excinfo:
        await submit_donation(handle, {**DONATION_FORM, "age": 16})
    assert excinfo.value.message == "Donor must be between 17 and 70 years old"
    handle.transact.assert_not_awaited()


async def test_short_contact_number():
    with pytest.raises(FormInvalid) as excinfo:
        await submit_donation(_handle(), {**DONATION_FORM, "contact": "123"})
    assert excinfo.value.message == "Please enter a valid contact number"


async def test_donation_requires_connected_wallet():
    with pytest.raises(TransactionFailed) as excinfo:
        await submit_donation(None, DONATION_FORM)
    assert excinfo.value.message == "Please connect your wallet first"


async def test_blood_request_converts_units_to_volume():
    handle = _handle()
    await submit_blood_request(handle, REQUEST_FORM)
    handle.transact.assert_awaited_once_with(
        "requestBlood", "A-", 900, "Bob", 54, "5559876543", "City Hospital", "Surgery",
    )


async def test_rejected_transaction():
    handle = _handle(transact=AsyncMock(side_effect=ValueError({"code": 4001, "message": "User denied"})))
    with pytest.raises(TransactionRejected):
        await submit_donation(handle, DONATION_FORM)


async def test_failed_transaction_keeps_reason():
    handle = _handle(transact=AsyncMock(side_effect=RuntimeError("out of gas")))
    with pytest.raises(TransactionFailed) as excinfo:
        await submit_blood_request(handle, REQUEST_FORM)
    assert "out of gas" in excinfo.value.message


async def test_stale_handle_is_not_masked():
    handle = _handle(transact=AsyncMock(side_effect=StaleContractHandle()))
    with pytest.raises(StaleContractHandle):
        await submit_donation(handle, DONATION_FORM)


async def test_fetch_stats():
    values = {"getTotalDonors": 3, "getTotalDonations": 5, "getTotalRequests": 2}
    handle = _handle(call=AsyncMock(side_effect=lambda name, *args: values[name]))
    assert await fetch_stats(handle) == {"totalDonors": 3, "totalDonations": 5, "totalRequests": 2}


async def test_inventory_read_failure_counts_as_zero():
    def quantity(name, blood_type):
        if blood_type == "AB-":
            raise RuntimeError("execution reverted")
        return 450

    inventory = await fetch_inventory(_handle(call=AsyncMock(side_effect=quantity)))
    assert len(inventory) == 8
    by_type = {row["bloodType"]: row["quantity"] for row in inventory}
    assert by_type["AB-"] == 0
    assert by_type["O+"] == 450


async def test_inventory_stops_on_stale_handle():
    handle = _handle(call=AsyncMock(side_effect=StaleContractHandle()))
    with pytest.raises(StaleContractHandle):
        await fetch_inventory(handle)
