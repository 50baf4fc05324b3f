"""
Tests for Web3ContractClient.
"""
import json
from unittest.mock import MagicMock, patch

import pytest
from requests.adapters import HTTPAdapter

from raisin_sdk.client import Web3ContractClient, _make_session
from raisin_sdk.config import RaisinConfig
from raisin_sdk.exceptions import SchemaError, SigningError
from raisin_sdk.orchestrator import RaisinOrchestrator
from raisin_sdk.submitter import CancelToken, PendingTransaction
from conftest import RAISIN_ADDRESS, SIGNER_ADDRESS, TEST_RPC_URL, TOKEN_A


@pytest.fixture
def config():
    return RaisinConfig(rpc_url=TEST_RPC_URL, poll_interval=0, gas_price=7)


@pytest.fixture
def signer():
    signer = MagicMock()
    signer.address = SIGNER_ADDRESS
    return signer


def test_client_initialization(config, signer):
    """Schemas are loaded once and the submitter gets the config settings"""
    w3 = MagicMock()
    client = Web3ContractClient(config, signer=signer, w3=w3)

    assert client.w3 is w3
    assert client.raisin.address == RAISIN_ADDRESS
    assert client.raisin.schema.has_function("batchTokenDonate")
    assert client.confirmations == 6
    assert client.address == SIGNER_ADDRESS
    assert client.submitter.gas_price == 7
    assert client.submitter.timeout == config.confirmation_timeout


def test_builds_http_provider(config):
    with patch("raisin_sdk.client.Web3") as mock_web3:
        client = Web3ContractClient(config)

    _, kwargs = mock_web3.HTTPProvider.call_args
    assert mock_web3.HTTPProvider.call_args[0][0] == TEST_RPC_URL
    assert kwargs["request_kwargs"] == {"timeout": config.request_timeout}
    assert kwargs["session"] is not None
    assert client.w3 is mock_web3.return_value


def test_address_without_signer(config):
    client = Web3ContractClient(config, w3=MagicMock())
    with pytest.raises(SigningError):
        client.address


def test_token_refs_are_cached(config):
    client = Web3ContractClient(config, w3=MagicMock())
    ref = client.token(TOKEN_A.lower())
    assert ref.address == TOKEN_A
    assert client.token(TOKEN_A) is ref


def test_bad_abi_path(config, tmp_path):
    config.raisin_abi_path = str(tmp_path / "missing.json")
    with pytest.raises(SchemaError, match="not found"):
        Web3ContractClient(config, w3=MagicMock())


def test_non_conforming_abi(config, tmp_path):
    abi_path = tmp_path / "raisin.json"
    abi_path.write_text(json.dumps([
        {"type": "function", "name": "endFund", "inputs": [{"name": "index", "type": "uint256"}],
         "outputs": [], "stateMutability": "nonpayable"}
    ]))
    config.raisin_abi_path = str(abi_path)
    with pytest.raises(SchemaError, match="missing function"):
        Web3ContractClient(config, w3=MagicMock())


def test_delegates_to_submitter(config, signer):
    token = CancelToken()
    client = Web3ContractClient(config, signer=signer, w3=MagicMock(), cancel_token=token)
    client.submitter = MagicMock()
    descriptor = client.build_call(client.raisin, "endFund", [1])
    pending = PendingTransaction(tx_hash="0x01")

    client.submit(descriptor)
    client.submitter.submit.assert_called_once_with(descriptor)

    client.call_readonly(descriptor)
    client.submitter.call_readonly.assert_called_once_with(descriptor)

    client.send_value(TOKEN_A, 5)
    client.submitter.send_value.assert_called_once_with(TOKEN_A, 5)

    client.await_confirmation(pending, 6)
    client.submitter.await_confirmation.assert_called_once_with(pending, 6, cancel_token=token)


def test_get_balance_through_web3(config):
    """A read-only operation goes through one eth_call per contract function"""
    w3 = MagicMock()
    functions = w3.eth.contract.return_value.functions
    functions.decimals.return_value.call.return_value = 6
    functions.balanceOf.return_value.call.return_value = 12_340_000
    orchestrator = RaisinOrchestrator(Web3ContractClient(config, w3=w3))

    balance = orchestrator.get_balance(SIGNER_ADDRESS, TOKEN_A)

    assert balance.formatted == "12.34"
    functions.balanceOf.assert_called_once_with(SIGNER_ADDRESS)
    w3.eth.send_raw_transaction.assert_not_called()


def test_session_retries_connections_only():
    session = _make_session(3)
    adapter = session.get_adapter(TEST_RPC_URL)
    assert isinstance(adapter, HTTPAdapter)
    retries = adapter.max_retries
    assert retries.connect == 3
    assert retries.read == 0
    assert retries.status == 0
