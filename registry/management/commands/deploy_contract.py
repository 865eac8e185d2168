import json
import re
from pathlib import Path

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from web3 import Web3


class Command(BaseCommand):
    help = "Deploy the BloodDonation artifact to RPC_URL and record its address in .env."

    def add_arguments(self, parser):
        parser.add_argument("--artifact", default=None, help="Compiled artifact (defaults to CONTRACT_ARTIFACT)")
        parser.add_argument("--rpc-url", default=None)
        parser.add_argument("--env-file", default=None, help="File to update (defaults to BASE_DIR/.env)")

    def handle(self, *args, **options):
        artifact_path = Path(options["artifact"] or settings.CONTRACT_ARTIFACT)
        if not artifact_path.exists():
            raise CommandError(f"artifact not found: {artifact_path}")
        artifact = json.loads(artifact_path.read_text(encoding="utf-8"))

        w3 = Web3(Web3.HTTPProvider(options["rpc_url"] or settings.RPC_URL))
        if not w3.is_connected():
            raise CommandError("cannot reach the JSON-RPC endpoint")
        deployer = w3.eth.accounts[0]
        factory = w3.eth.contract(abi=artifact["abi"], bytecode=artifact["bytecode"])
        tx_hash = factory.constructor().transact({"from": deployer})
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash)
        address = receipt["contractAddress"]
        self.stdout.write(f"BloodDonation contract deployed to: {address}")

        env_file = Path(options["env_file"] or settings.ENV_FILE)
        write_env_value(env_file, "CONTRACT_ADDRESS", address)
        self.stdout.write(self.style.SUCCESS(f"Updated {env_file} with contract address"))


def write_env_value(env_file: Path, key: str, value: str) -> None:
    """Replace ``KEY=...`` in ``env_file``, appending the line when absent."""
    content = env_file.read_text(encoding="utf-8") if env_file.exists() else ""
    line = f"{key}={value}"
    pattern = re.compile(rf"^{re.escape(key)}=.*$", re.MULTILINE)
    if pattern.search(content):
        content = pattern.sub(lambda _: line, content)
    else:
        if content and not content.endswith("\n"):
            content += "\n"
        content += line + "\n"
    env_file.write_text(content, encoding="utf-8")
