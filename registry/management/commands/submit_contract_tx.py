import asyncio
import json

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from web3 import Web3

from registry.models import User
from registry.serializers.donation import DONATION_AMOUNT, clean_text
from registry.services.blood_requests import create_blood_request
from registry.services.chain import submit_blood_request, submit_donation
from registry.services.donations import create_donation
from registry.wallet.errors import WalletError
from registry.wallet.provider import Web3Provider
from registry.wallet.session import SessionManager


class Command(BaseCommand):
    help = "Send a donate or requestBlood transaction from the connected wallet."

    def add_arguments(self, parser):
        parser.add_argument("kind", choices=["donate", "request"])
        parser.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint (defaults to RPC_URL)")
        parser.add_argument("--blood-type", required=True)
        parser.add_argument("--name", required=True, help="Donor or recipient name")
        parser.add_argument("--age", type=int, required=True)
        parser.add_argument("--contact", required=True)
        parser.add_argument("--units", type=int, default=1, help="Whole donations requested (request only)")
        parser.add_argument("--hospital", default="")
        parser.add_argument("--reason", default="")
        parser.add_argument("--record", action="store_true", help="Also store the off-chain record")

    def handle(self, *args, **options):
        kind = options["kind"]
        if kind == "donate":
            form = {
                "bloodType": options["blood_type"],
                "donorName": options["name"],
                "age": options["age"],
                "contact": options["contact"],
            }
        else:
            form = {
                "bloodType": options["blood_type"],
                "units": options["units"],
                "recipientName": options["name"],
                "age": options["age"],
                "contact": options["contact"],
                "hospital": options["hospital"],
                "reason": options["reason"],
            }
        account, receipt = asyncio.run(self._send(options["rpc_url"] or settings.RPC_URL, kind, form))
        tx_hash = Web3.to_hex(receipt["transactionHash"])
        self.stdout.write(json.dumps({"account": account, "transactionHash": tx_hash}, indent=2))
        if options["record"]:
            self._record(kind, account, tx_hash, form)
        self.stdout.write(self.style.SUCCESS(f"{kind} transaction mined: {tx_hash}"))

    async def _send(self, rpc_url, kind, form):
        manager = SessionManager.from_settings(Web3Provider.from_url(rpc_url))
        async with manager.mounted():
            if not await manager.connect():
                raise CommandError(manager.get_session().network_error or "wallet session is not connected")
            session = manager.get_session()
            try:
                if kind == "donate":
                    receipt = await submit_donation(session.contract, form)
                else:
                    receipt = await submit_blood_request(session.contract, form)
            except WalletError as exc:
                raise CommandError(exc.message) from exc
        return session.account, receipt

    def _record(self, kind, account, tx_hash, form):
        try:
            if kind == "donate":
                create_donation(
                    transaction_hash=tx_hash,
                    donor_address=account,
                    blood_type=form["bloodType"],
                    quantity=DONATION_AMOUNT,
                    donor_name=clean_text(form["donorName"]),
                    age=form["age"],
                    contact=clean_text(form["contact"]),
                )
            else:
                create_blood_request(
                    transaction_hash=tx_hash,
                    requester_address=account,
                    blood_type=form["bloodType"],
                    quantity=form["units"] * DONATION_AMOUNT,
                    recipient_name=clean_text(form["recipientName"]),
                    age=form["age"],
                    contact=clean_text(form["contact"]),
                    hospital=clean_text(form["hospital"]),
                    reason=clean_text(form["reason"]),
                )
        except User.DoesNotExist:
            raise CommandError(f"{account} is not a registered user")
        self.stdout.write(f"Stored off-chain {kind} record")
