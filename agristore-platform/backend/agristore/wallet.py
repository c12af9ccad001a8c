# agristore/wallet.py
import json
import logging
import os
from typing import Any, List, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from hexbytes import HexBytes
from web3 import Web3

from .errors import ChainError, InvalidAddressError, fail_open
from .schemas import Challenge
from .settings import Settings
from .uploads import now_ms

log = logging.getLogger("agristore.wallet")

CHALLENGE_TEMPLATE = "AgriStore Authentication\nAddress: {address}\nTimestamp: {timestamp}"

# load ABI
HERE = os.path.dirname(__file__)
ABI_PATH = os.path.join(HERE, "abi", "AgriStore.json")

CHAIN_NAMES = {8453: "base", 84532: "base-sepolia"}


def load_abi(path: str = ABI_PATH) -> list:
    with open(path) as f:
        artifact = json.load(f)
    return artifact.get("abi", artifact)  # if the file is just the abi array


def is_address(value: Any) -> bool:
    return isinstance(value, str) and Web3.is_address(value)


def issue_challenge(address: str, timestamp: Optional[int] = None) -> Challenge:
    """
    Build the message a wallet must sign. Nothing is stored server side: the
    caller echoes the exact message back to `verify_signature`.
    """
    if not is_address(address):
        raise InvalidAddressError(address)
    ts = now_ms() if timestamp is None else int(timestamp)
    return Challenge(
        address=address,
        message=CHALLENGE_TEMPLATE.format(address=address, timestamp=ts),
        issuedAt=ts,
    )


def recover_signer(message: str, signature: str) -> str:
    """
    Recover the address that signed `message` with personal_sign semantics
    (EIP-191, i.e. ethers' signMessage).
    """
    msg = encode_defunct(text=message)
    return Account.recover_message(msg, signature=HexBytes(signature))


def verify_signature(message: str, signature: str, claimed_address: str) -> bool:
    try:
        recovered = recover_signer(message, signature)
        return recovered.lower() == claimed_address.lower()
    except Exception as e:
        log.warning("Signature verification failed: %s", e)
        return False


class ChainClient:
    """
    Read-only handle on the Base network and the AgriStore ledger contract.
    The service reports on the chain but never sends transactions to it.
    """

    def __init__(self, settings: Settings, w3: Optional[Web3] = None):
        self.settings = settings
        self.rpc_url = settings.rpc_url
        self.w3 = w3 or Web3(
            Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": settings.STORAGE_TIMEOUT_SECONDS})
        )
        self.abi = load_abi()
        self.contract = None
        if is_address(settings.CONTRACT_ADDRESS):
            self.contract = self.w3.eth.contract(
                address=Web3.to_checksum_address(settings.CONTRACT_ADDRESS), abi=self.abi
            )

    def declared_functions(self) -> List[str]:
        return [entry["name"] for entry in self.abi if entry.get("type") == "function"]

    @fail_open(lambda: False)
    def is_connected(self) -> bool:
        return bool(self.w3.is_connected())

    def network_info(self) -> dict:
        try:
            chain_id = int(self.w3.eth.chain_id)
            block_number = int(self.w3.eth.block_number)
        except Exception as e:
            log.error("Network info error: %s", e)
            raise ChainError(f"Could not reach {self.rpc_url}: {e}") from e

        return {
            "network": {
                "name": CHAIN_NAMES.get(chain_id, "unknown"),
                "chainId": str(chain_id),
                "blockNumber": block_number,
                "rpcUrl": self.rpc_url,
            },
            "contract": {
                "address": self.contract.address if self.contract is not None else self.settings.CONTRACT_ADDRESS,
                "network": "Base",
                "functions": self.declared_functions(),
            },
        }
