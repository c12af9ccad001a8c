import re
from unittest.mock import MagicMock, PropertyMock

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from agristore.errors import ChainError, InvalidAddressError
from agristore.settings import Settings
from agristore.wallet import ChainClient, is_address, issue_challenge, verify_signature


def sign(account, message: str) -> str:
    signed = Account.sign_message(encode_defunct(text=message), private_key=account.key)
    return signed.signature.hex()


def test_challenge_embeds_address_and_timestamp(account):
    challenge = issue_challenge(account.address)
    assert account.address in challenge.message
    match = re.search(r"Timestamp: (\d+)$", challenge.message)
    assert match is not None
    assert int(match.group(1)) == challenge.issuedAt
    # epoch milliseconds, not seconds
    assert challenge.issuedAt > 10**12


def test_challenge_with_pinned_timestamp(account):
    challenge = issue_challenge(account.address, timestamp=1700000000000)
    assert challenge.message == f"AgriStore Authentication\nAddress: {account.address}\nTimestamp: 1700000000000"


@pytest.mark.parametrize("bad", [None, "", "0x123", "not-an-address", 42])
def test_challenge_rejects_invalid_address(bad):
    with pytest.raises(InvalidAddressError) as exc:
        issue_challenge(bad)
    assert exc.value.status_code == 400
    assert exc.value.fields == ["walletAddress"]


def test_is_address_accepts_lowercase(account):
    assert is_address(account.address.lower())
    assert is_address(account.address)


def test_verify_round_trip(account):
    message = issue_challenge(account.address).message
    assert verify_signature(message, sign(account, message), account.address) is True


def test_verify_is_case_insensitive_on_claimed_address(account):
    message = issue_challenge(account.address).message
    assert verify_signature(message, sign(account, message), account.address.lower()) is True


def test_verify_rejects_other_message(account):
    message = issue_challenge(account.address, timestamp=1).message
    other = issue_challenge(account.address, timestamp=2).message
    assert verify_signature(other, sign(account, message), account.address) is False


def test_verify_rejects_other_key(account):
    intruder = Account.create()
    message = issue_challenge(account.address).message
    assert verify_signature(message, sign(intruder, message), account.address) is False


@pytest.mark.parametrize("signature", ["", "0x", "0xdeadbeef", "zz-not-hex", None])
def test_verify_never_throws_on_malformed_signature(account, signature):
    assert verify_signature("hello", signature, account.address) is False


def test_verify_with_missing_claimed_address(account):
    assert verify_signature("hello", sign(account, "hello"), None) is False


def test_chain_client_selects_testnet_outside_production():
    settings = Settings(_env_file=None, ENVIRONMENT="development")
    chain = ChainClient(settings, w3=MagicMock())
    assert chain.rpc_url == settings.BASE_TESTNET_RPC_URL
    assert chain.contract is None
    assert "registerFarmer" in chain.declared_functions()


def test_chain_client_selects_mainnet_in_production():
    settings = Settings(_env_file=None, ENVIRONMENT="production")
    assert ChainClient(settings, w3=MagicMock()).rpc_url == settings.BASE_RPC_URL


def test_network_info_reports_chain_and_contract(account):
    settings = Settings(_env_file=None, CONTRACT_ADDRESS=account.address)
    w3 = MagicMock()
    w3.eth.chain_id = 84532
    w3.eth.block_number = 123
    chain = ChainClient(settings, w3=w3)

    info = chain.network_info()
    assert info["network"]["name"] == "base-sepolia"
    assert info["network"]["chainId"] == "84532"
    assert info["network"]["blockNumber"] == 123
    assert info["contract"]["network"] == "Base"
    assert set(info["contract"]["functions"]) == {
        "registerFarmer", "registerCrop", "recordFilecoinStorage", "getFarmer", "getCrop",
    }


def test_network_info_wraps_rpc_failure():
    w3 = MagicMock()
    type(w3.eth).chain_id = PropertyMock(side_effect=ConnectionError("rpc down"))
    chain = ChainClient(Settings(_env_file=None), w3=w3)
    with pytest.raises(ChainError):
        chain.network_info()


def test_is_connected_fails_open():
    w3 = MagicMock()
    w3.is_connected.side_effect = RuntimeError("boom")
    chain = ChainClient(Settings(_env_file=None), w3=w3)
    assert chain.is_connected() is False
