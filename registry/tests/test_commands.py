from datetime import timedelta
from io import StringIO
from unittest.mock import AsyncMock, patch

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from registry.management.commands.deploy_contract import write_env_value
from registry.models import BloodRequest, Donation, InventoryUnit, User
from registry.tests.fakes import ACCOUNT, CONTRACT_ADDRESS, FakeProvider
from registry.wallet.network import NetworkDescriptor
from registry.wallet.session import SessionManager

NETWORK = NetworkDescriptor(chain_id="0x539", chain_name="Localhost 8545", rpc_urls=("http://localhost:8545",))
TX_HASH = bytes.fromhex("ab" * 32)


@pytest.mark.django_db
def test_purge_expired_inventory_command():
    now = timezone.now()
    InventoryUnit.objects.create(blood_type="B-", quantity=450, expiry_date=now - timedelta(days=3))
    InventoryUnit.objects.create(blood_type="B-", quantity=450, expiry_date=now + timedelta(days=3))
    out = StringIO()
    call_command("purge_expired_inventory", stdout=out)
    assert "Removed 1 expired unit(s)." in out.getvalue()
    assert InventoryUnit.objects.count() == 1


def test_write_env_value_replaces_existing_line(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("DEBUG=1\nCONTRACT_ADDRESS=0xold\nRPC_URL=http://localhost:8545\n")
    write_env_value(env_file, "CONTRACT_ADDRESS", "0xnew")
    assert env_file.read_text() == "DEBUG=1\nCONTRACT_ADDRESS=0xnew\nRPC_URL=http://localhost:8545\n"


def test_write_env_value_appends_when_missing(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("DEBUG=1")
    write_env_value(env_file, "CONTRACT_ADDRESS", "0xnew")
    assert env_file.read_text() == "DEBUG=1\nCONTRACT_ADDRESS=0xnew\n"


def test_write_env_value_creates_file(tmp_path):
    env_file = tmp_path / ".env"
    write_env_value(env_file, "CONTRACT_ADDRESS", "0xnew")
    assert env_file.read_text() == "CONTRACT_ADDRESS=0xnew\n"


def _fake_session(provider):
    return lambda _provider, **kwargs: SessionManager(
        provider, NETWORK, contract_address=CONTRACT_ADDRESS, abi=[],
    )


DONATE_ARGS = ["donate", "--blood-type", "O+", "--name", "Alice", "--age", "30", "--contact", "5551234567"]


@pytest.mark.django_db
def test_submit_donation_and_store_record():
    User.objects.create(address=ACCOUNT, name="Alice")
    send = AsyncMock(return_value={"transactionHash": TX_HASH, "status": 1})
    out = StringIO()
    with patch.object(SessionManager, "from_settings", _fake_session(FakeProvider())), \
            patch("registry.management.commands.submit_contract_tx.submit_donation", send):
        call_command("submit_contract_tx", *DONATE_ARGS, "--record", stdout=out)
    handle, form = send.await_args.args
    assert handle.address == CONTRACT_ADDRESS
    assert form == {"bloodType": "O+", "donorName": "Alice", "age": 30, "contact": "5551234567"}
    donation = Donation.objects.get()
    assert donation.transaction_hash == "0x" + "ab" * 32
    assert donation.donor_id == ACCOUNT
    assert donation.quantity == 450


@pytest.mark.django_db
def test_submit_blood_request_stores_volume():
    User.objects.create(address=ACCOUNT, role="HOSPITAL")
    send = AsyncMock(return_value={"transactionHash": TX_HASH, "status": 1})
    with patch.object(SessionManager, "from_settings", _fake_session(FakeProvider())), \
            patch("registry.management.commands.submit_contract_tx.submit_blood_request", send):
        call_command(
            "submit_contract_tx", "request", "--blood-type", "A-", "--name", "Bob", "--age", "54",
            "--contact", "5559876543", "--units", "2", "--hospital", "City Hospital",
            "--reason", "Surgery", "--record", stdout=StringIO(),
        )
    assert send.await_args.args[1]["units"] == 2
    assert BloodRequest.objects.get().quantity == 900


@pytest.mark.django_db
def test_submit_rejects_invalid_form_before_sending():
    args = ["donate", "--blood-type", "O+", "--name", "Alice", "--age", "12", "--contact", "5551234567"]
    with patch.object(SessionManager, "from_settings", _fake_session(FakeProvider())):
        with pytest.raises(CommandError, match="Donor must be between 17 and 70 years old"):
            call_command("submit_contract_tx", *args, stdout=StringIO())
    assert not Donation.objects.exists()


@pytest.mark.django_db
def test_submit_without_connected_wallet():
    with patch.object(SessionManager, "from_settings", _fake_session(FakeProvider(code="0x"))):
        with pytest.raises(CommandError, match="not deployed"):
            call_command("submit_contract_tx", *DONATE_ARGS, stdout=StringIO())
