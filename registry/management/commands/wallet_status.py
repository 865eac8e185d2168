import asyncio
import json

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from registry.services.chain import fetch_inventory, fetch_stats
from registry.wallet.broadcast import channel_layer_publisher
from registry.wallet.provider import Web3Provider
from registry.wallet.session import SessionManager


class Command(BaseCommand):
    help = "Connect a wallet session to RPC_URL and print the resulting snapshot."

    def add_arguments(self, parser):
        parser.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint (defaults to RPC_URL)")
        parser.add_argument("--stats", action="store_true", help="Also read totals and inventory from the contract")
        parser.add_argument("--broadcast", action="store_true", help="Publish snapshots to WebSocket clients")

    def handle(self, *args, **options):
        rpc_url = options["rpc_url"] or settings.RPC_URL
        ok = asyncio.run(self._run(rpc_url, options["stats"], options["broadcast"]))
        if not ok:
            raise CommandError("wallet session is not connected")

    async def _run(self, rpc_url, with_stats, broadcast):
        manager = SessionManager.from_settings(Web3Provider.from_url(rpc_url))
        if broadcast:
            manager.subscribe(channel_layer_publisher())
        async with manager.mounted():
            connected = await manager.connect()
            session = manager.get_session()
            self.stdout.write(json.dumps(session.as_dict(), indent=2))
            if not connected:
                self.stderr.write(self.style.ERROR(session.network_error or "not connected"))
                return False
            if with_stats:
                stats = await fetch_stats(session.contract)
                stats["inventory"] = await fetch_inventory(session.contract)
                self.stdout.write(json.dumps(stats, indent=2))
        self.stdout.write(self.style.SUCCESS(f"Connected as {session.account}"))
        return True
